"""Domain models for the pharmacy-network bulk importer."""

from pharma_bulk.models.batch_result import BatchResult, ProgressSnapshot, ResultAccumulator, RowError
from pharma_bulk.models.candidates import (
    CandidateRecord,
    DoctorCandidate,
    MunicipalityCandidate,
    PharmacyCandidate,
    SpecialtyCandidate,
    StateCandidate,
    SubPharmacyCandidate,
)
from pharma_bulk.models.config_models import ApiConfig, EntityOverride, ImportConfig
from pharma_bulk.models.error_record import ErrorRecord
from pharma_bulk.models.import_context import ImportContext
from pharma_bulk.models.run_state import ImportRunState, RunPhase

__all__ = [
    # Configuration models
    "ApiConfig",
    "EntityOverride",
    "ImportConfig",
    # Candidate records
    "CandidateRecord",
    "MunicipalityCandidate",
    "StateCandidate",
    "PharmacyCandidate",
    "SubPharmacyCandidate",
    "SpecialtyCandidate",
    "DoctorCandidate",
    # Run models
    "ImportContext",
    "ImportRunState",
    "RunPhase",
    "BatchResult",
    "ResultAccumulator",
    "RowError",
    "ProgressSnapshot",
    "ErrorRecord",
]
