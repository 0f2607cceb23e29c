"""
Pytest configuration.

Registers the integration marker / --run-integration option and provides a
scripted extraction backend for exercising the pass logic without a network.
"""

import pytest
from invoice_reconciler.models.invoice import InvoiceRecord
from invoice_reconciler.services.extractor import ExtractionError


def pytest_addoption(parser):
    """Add custom command-line options"""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests against a real extraction backend"
    )


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test requiring a real extraction backend"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is specified"""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


class ScriptedExtractor:
    """
    Fake Extractor.

    Full-record calls return `primary` for every backend except "fallback",
    which returns `fallback`. Single-field calls answer from `fields`; names in
    `failing_fields` raise. Any scripted value that is an exception is raised.
    Every call is recorded as (schema name, backend).
    """

    def __init__(self, primary=None, fallback=None, fields=None, failing_fields=()):
        self.primary = primary if primary is not None else InvoiceRecord()
        self.fallback = fallback if fallback is not None else InvoiceRecord()
        self.fields = fields or {}
        self.failing_fields = set(failing_fields)
        self.calls = []
        self.documents = []

    async def extract(self, document, schema, instructions, *, backend=None):
        self.calls.append((schema.__name__, backend))
        self.documents.append(document)

        if schema is InvoiceRecord:
            source = self.fallback if backend == "fallback" else self.primary
            if isinstance(source, Exception):
                raise source
            return source

        field = next(iter(schema.model_fields))
        if field in self.failing_fields:
            raise ExtractionError(f"backend could not read {field}")
        return schema(**{field: self.fields.get(field)})

    def backends_called(self) -> list:
        return [backend for _, backend in self.calls]


@pytest.fixture
def scripted_extractor():
    """Factory for ScriptedExtractor instances"""
    return ScriptedExtractor
