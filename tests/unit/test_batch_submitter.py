from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from pharma_bulk.api.client import ApiError, BulkCreateResponse
from pharma_bulk.models.candidates import SpecialtyCandidate
from pharma_bulk.models.config_models import EntityOverride
from pharma_bulk.models.import_context import ImportContext
from pharma_bulk.services.batch_submitter import BatchSubmitter, describe_row_error, partition
from pharma_bulk.services.entities import get_policy


def _records(n: int) -> list[SpecialtyCandidate]:
    return [SpecialtyCandidate(name=f"Especialidad {i}", description="") for i in range(n)]


def _policy(batch_size: int = 50, delay_ms: int = 300):
    return get_policy("specialties", EntityOverride(batch_size=batch_size, batch_delay_ms=delay_ms))


class TestPartition:
    @pytest.mark.parametrize("n,size,expected", [(0, 50, 0), (1, 50, 1), (50, 50, 1), (51, 50, 2), (125, 50, 3), (23, 10, 3)])
    def test_chunk_count_is_ceiling(self, n, size, expected):
        assert len(partition(list(range(n)), size)) == expected

    def test_order_and_offsets(self):
        chunks = partition(list(range(7)), 3)
        assert chunks == [(0, [0, 1, 2]), (3, [3, 4, 5]), (6, [6])]

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            partition([1], 0)


class TestDescribeRowError:
    def test_error_string(self):
        assert describe_row_error({"index": 0, "error": "duplicado"}) == "duplicado"

    def test_errors_list_joined(self):
        assert describe_row_error({"index": 0, "errors": ["nombre requerido", "código requerido"]}) == (
            "nombre requerido, código requerido"
        )

    def test_errors_object_serialized(self):
        assert describe_row_error({"index": 0, "errors": {"name": "requerido"}}) == '{"name": "requerido"}'

    def test_whole_entry_serialized(self):
        assert describe_row_error({"index": 2}) == '{"index": 2}'


class TestSubmit:
    def test_all_created(self, fake_client):
        sleep = MagicMock()
        submitter = BatchSubmitter(fake_client, _policy(), sleep=sleep)
        result = submitter.submit(_records(120), ImportContext())

        assert result.created_count == 120
        assert result.failed_count == 0
        assert result.errors == ()
        assert result.attempted_batches == result.total_batches == 3
        assert [len(c[2]) for c in fake_client.calls] == [50, 50, 20]
        assert fake_client.calls[0][0] == "/administrator/specialties/bulk"
        assert fake_client.calls[0][1] == "specialties"

    def test_order_preserved_across_chunks(self, fake_client):
        records = _records(7)
        BatchSubmitter(fake_client, _policy(batch_size=3), sleep=MagicMock()).submit(records, ImportContext())
        sent = [r for _, _, chunk in fake_client.calls for r in chunk]
        assert sent == records

    def test_delay_between_chunks_only(self, fake_client):
        sleep = MagicMock()
        BatchSubmitter(fake_client, _policy(batch_size=10, delay_ms=500), sleep=sleep).submit(_records(25), ImportContext())
        assert sleep.call_count == 2
        sleep.assert_called_with(0.5)

    def test_single_chunk_never_sleeps(self, fake_client):
        sleep = MagicMock()
        BatchSubmitter(fake_client, _policy(), sleep=sleep).submit(_records(5), ImportContext())
        sleep.assert_not_called()

    def test_row_errors_offset_to_file_position(self, fake_client_factory):
        client = fake_client_factory(reject={2: [{"index": 3, "error": "Nombre duplicado"}]})
        result = BatchSubmitter(client, _policy(batch_size=10), sleep=MagicMock()).submit(_records(25), ImportContext())

        assert result.created_count == 24
        assert result.failed_count == 1
        assert len(result.errors) == 1
        assert result.errors[0].row_index == 13
        assert result.error_lines() == ["Fila 14: Nombre duplicado"]

    def test_transport_failure_counts_whole_chunk(self, fake_client_factory):
        client = fake_client_factory(fail_batches={2: "timeout of 100000ms exceeded"})
        on_success = MagicMock()
        result = BatchSubmitter(client, _policy(), sleep=MagicMock()).submit(
            _records(125), ImportContext(), on_success=on_success
        )

        assert len(client.calls) == 3
        assert result.created_count == 75
        assert result.failed_count == 50
        assert result.error_lines() == ["Error en lote 2: timeout of 100000ms exceeded"]
        on_success.assert_called_once_with(result)

    def test_tally_comes_from_server_summary(self):
        client = MagicMock()
        client.bulk_create.return_value = BulkCreateResponse(total=10, created=8, failed=2, errors=[])
        result = BatchSubmitter(client, _policy(), sleep=MagicMock()).submit(_records(10), ImportContext())
        assert (result.created_count, result.failed_count) == (8, 2)
        assert result.errors == ()

    def test_error_without_index_names_batch(self):
        client = MagicMock()
        client.bulk_create.return_value = BulkCreateResponse(
            total=1, created=0, failed=1, errors=[{"error": "sin índice"}]
        )
        result = BatchSubmitter(client, _policy(), sleep=MagicMock()).submit(_records(1), ImportContext())
        assert result.errors[0].row_index is None
        assert result.error_lines() == ["Lote 1: sin índice"]

    def test_no_success_callback_when_nothing_created(self, fake_client_factory):
        client = fake_client_factory(fail_batches={1: "boom"})
        on_success = MagicMock()
        result = BatchSubmitter(client, _policy(), sleep=MagicMock()).submit(
            _records(10), ImportContext(), on_success=on_success
        )
        assert result.created_count == 0
        on_success.assert_not_called()

    def test_progress_published_after_each_chunk(self, fake_client):
        seen = []
        BatchSubmitter(fake_client, _policy(batch_size=4), listeners=[seen.append], sleep=MagicMock()).submit(
            _records(10), ImportContext()
        )
        assert [s.batch_index for s in seen] == [1, 2, 3]
        assert [s.created_count for s in seen] == [4, 8, 10]
        assert seen[-1].percentage == 100

    def test_failing_listener_does_not_stop_upload(self, fake_client):
        def broken(snapshot):
            raise RuntimeError("render failed")

        result = BatchSubmitter(fake_client, _policy(batch_size=4), listeners=[broken], sleep=MagicMock()).submit(
            _records(10), ImportContext()
        )
        assert result.created_count == 10

    def test_cancel_between_chunks(self, fake_client):
        cancel = threading.Event()
        submitter = BatchSubmitter(
            fake_client, _policy(batch_size=5), sleep=MagicMock(), cancel_event=cancel,
            listeners=[lambda s: cancel.set() if s.batch_index == 1 else None],
        )
        result = submitter.submit(_records(20), ImportContext())
        assert len(fake_client.calls) == 1
        assert result.cancelled is True
        assert result.attempted_batches == 1
        assert result.total_batches == 4
        assert result.created_count == 5

    def test_metrics_callback(self, fake_client_factory):
        client = fake_client_factory(fail_batches={2: "boom"})
        metrics = []
        BatchSubmitter(client, _policy(batch_size=5), sleep=MagicMock(), metrics_callback=metrics.append).submit(
            _records(12), ImportContext()
        )
        assert [(m.batch_number, m.batch_size, m.succeeded) for m in metrics] == [
            (1, 5, True), (2, 5, False), (3, 2, True),
        ]

    def test_api_error_message_used_verbatim(self):
        client = MagicMock()
        client.bulk_create.side_effect = ApiError("Error desconocido")
        result = BatchSubmitter(client, _policy(), sleep=MagicMock()).submit(_records(3), ImportContext())
        assert result.error_lines() == ["Error en lote 1: Error desconocido"]
        assert result.failed_count == 3

    def test_cancel_during_pause_skips_next_chunk(self, fake_client):
        cancel = threading.Event()
        submitter = BatchSubmitter(
            fake_client, _policy(batch_size=1, delay_ms=300), sleep=lambda seconds: cancel.set(), cancel_event=cancel,
        )
        result = submitter.submit(_records(3), ImportContext())
        assert len(fake_client.calls) == 1
        assert result.cancelled is True
        assert result.attempted_batches == 1
        assert result.created_count == 1

    def test_default_pause_waits_on_cancel_event(self, fake_client):
        cancel = threading.Event()
        submitter = BatchSubmitter(fake_client, _policy(), cancel_event=cancel)
        assert submitter._sleep == cancel.wait
