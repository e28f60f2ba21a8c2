from __future__ import annotations

import json
import re
from pathlib import Path
from unittest.mock import MagicMock, patch

import pandas as pd

from pharma_bulk.cli import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS_ALL, main


def _municipios(path: Path, n: int) -> Path:
    rows = [{"Nombre": f"Municipio {i}", "Código": f"M{i:03d}", "Estado": "SI"} for i in range(n)]
    with pd.ExcelWriter(path, engine='openpyxl') as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name="Municipios", index=False)
    return path


def _patched_client(fake):
    mock_cls = MagicMock()
    mock_cls.return_value.__enter__.return_value = fake
    return patch("pharma_bulk.cli.app.ApiClient", mock_cls)


def test_template_command(temp_workdir: Path):
    code = main(["template", "pharmacies", "--output-dir", str(temp_workdir / "out")])
    assert code == EXIT_SUCCESS_ALL
    assert (temp_workdir / "out" / "plantilla_farmacias.xlsx").exists()


def test_template_sub_pharmacies_uses_name(temp_workdir: Path):
    main(["template", "sub_pharmacies", "--output-dir", "out", "--pharmacy-name", "Farmacia Sol"])
    assert (temp_workdir / "out" / "plantilla_sucursales_Farmacia_Sol.xlsx").exists()


def test_inspect_maps_rows(temp_workdir: Path, capsys):
    path = _municipios(temp_workdir / "data" / "municipios.xlsx", 5)
    code = main(["inspect", "municipalities", str(path), "--state-id", "7", "--rows", "2"])
    assert code == EXIT_SUCCESS_ALL
    out = capsys.readouterr().out
    assert "FILE: municipios.xlsx SHEET: Municipios rows=5" in out
    mapped = [json.loads(line) for line in out.splitlines() if line.startswith("    {")]
    assert mapped == [
        {"state_id": 7, "name": "Municipio 0", "code": "M000", "status": True},
        {"state_id": 7, "name": "Municipio 1", "code": "M001", "status": True},
    ]


def test_inspect_without_selection_shows_raw_rows(temp_workdir: Path, capsys):
    path = _municipios(temp_workdir / "data" / "municipios.xlsx", 1)
    assert main(["inspect", "municipalities", str(path)]) == EXIT_SUCCESS_ALL
    out = capsys.readouterr().out
    assert "selections missing" in out
    assert '"Nombre": "Municipio 0"' in out


def test_inspect_bad_file(temp_workdir: Path):
    path = temp_workdir / "data" / "notas.csv"
    path.write_text("a,b\n", encoding="utf-8")
    assert main(["inspect", "municipalities", str(path)]) == EXIT_FATAL


def test_upload_all_created(write_config: Path, temp_workdir: Path, fake_client, capsys):
    path = _municipios(temp_workdir / "data" / "municipios.xlsx", 60)
    with _patched_client(fake_client) as mock_cls:
        code = main(["upload", "municipalities", str(path), "--state-id", "7"])

    assert code == EXIT_SUCCESS_ALL
    mock_cls.assert_called_once()
    assert mock_cls.call_args.args[0] == "https://api.example.test"
    assert mock_cls.call_args.kwargs["timeout"] == 30.0
    assert [len(c[2]) for c in fake_client.calls] == [50, 10]
    out = capsys.readouterr().out
    assert "INFO Se crearon 60 municipios/cantones exitosamente." in out
    assert "SUMMARY entity=municipalities rows=60 created=60 failed=0 batches=2/2 errors=0" in out
    assert not list((temp_workdir / "logs").glob("errors-*.log"))


def test_upload_partial_failure(write_config: Path, temp_workdir: Path, fake_client_factory, capsys):
    path = _municipios(temp_workdir / "data" / "municipios.xlsx", 125)
    fake = fake_client_factory(fail_batches={2: "timeout of 100000ms exceeded"})
    with _patched_client(fake):
        code = main(["upload", "municipalities", str(path), "--state-id", "7"])

    assert code == EXIT_PARTIAL_FAILURE
    out = capsys.readouterr().out
    assert "WARN Se crearon 75 municipios/cantones exitosamente. 50 fallaron." in out
    assert "WARN Error en lote 2: timeout of 100000ms exceeded" in out
    logs = list((temp_workdir / "logs").glob("errors-*.log"))
    assert len(logs) == 1
    record = json.loads(logs[0].read_text(encoding="utf-8").splitlines()[0])
    assert record["error_type"] == "BATCH_FAILED"
    assert record["row"] == -1


def test_upload_missing_selection_is_fatal(write_config: Path, temp_workdir: Path, fake_client, capsys):
    path = _municipios(temp_workdir / "data" / "municipios.xlsx", 3)
    with _patched_client(fake_client):
        code = main(["upload", "municipalities", str(path)])
    assert code == EXIT_FATAL
    assert fake_client.calls == []
    assert "ERROR Debes seleccionar ciudad/provincia" in capsys.readouterr().out


def test_upload_without_config_is_fatal(temp_workdir: Path, capsys):
    path = _municipios(temp_workdir / "data" / "municipios.xlsx", 3)
    assert main(["upload", "municipalities", str(path), "--state-id", "7"]) == EXIT_FATAL
    assert "ERROR config: config file not found" in capsys.readouterr().out


def test_env_file_supplies_api(temp_workdir: Path, fake_client, monkeypatch):
    (temp_workdir / ".env").write_text(
        "PHARMA_API_BASE_URL=https://env.example.test\nPHARMA_API_TOKEN=env-token\n", encoding="utf-8"
    )
    # registered so monkeypatch restores them after load_dotenv overwrites os.environ
    monkeypatch.setenv("PHARMA_API_BASE_URL", "https://process.example.test")
    monkeypatch.setenv("PHARMA_API_TOKEN", "process-token")
    path = _municipios(temp_workdir / "data" / "municipios.xlsx", 2)
    with _patched_client(fake_client) as mock_cls:
        code = main(["upload", "municipalities", str(path), "--state-id", "7"])

    assert code == EXIT_SUCCESS_ALL
    assert mock_cls.call_args.args[0] == "https://env.example.test"
    assert mock_cls.call_args.args[1].token == "env-token"


def test_debug_upload_logs_batch_timings(write_config: Path, temp_workdir: Path, fake_client_factory, capsys):
    path = _municipios(temp_workdir / "data" / "municipios.xlsx", 60)
    fake = fake_client_factory(fail_batches={2: "boom"})
    with _patched_client(fake):
        code = main(["--debug", "upload", "municipalities", str(path), "--state-id", "7"])

    assert code == EXIT_PARTIAL_FAILURE
    out = capsys.readouterr().out
    assert re.search(r"^DEBUG batch 1: 50 record\(s\) in \d+\.\d{3}s \(ok\)$", out, re.MULTILINE)
    assert re.search(r"^DEBUG batch 2: 10 record\(s\) in \d+\.\d{3}s \(failed\)$", out, re.MULTILINE)
