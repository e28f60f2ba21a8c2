"""Bulk import pipeline services: mapping, batching, progress, templates."""

from pharma_bulk.services.batch_submitter import BatchMetrics, BatchSubmitter, describe_row_error, partition
from pharma_bulk.services.entities import ENTITIES, EntityPolicy, UnknownEntityError, get_policy
from pharma_bulk.services.import_run import ImportRun
from pharma_bulk.services.template import build_template, write_template

__all__ = [
    "BatchMetrics",
    "BatchSubmitter",
    "ENTITIES",
    "EntityPolicy",
    "ImportRun",
    "UnknownEntityError",
    "build_template",
    "describe_row_error",
    "get_policy",
    "partition",
    "write_template",
]
