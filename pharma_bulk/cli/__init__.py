from pharma_bulk.cli.app import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS_ALL, main

__all__ = [
    "main",
    "EXIT_SUCCESS_ALL",
    "EXIT_PARTIAL_FAILURE",
    "EXIT_FATAL",
]
