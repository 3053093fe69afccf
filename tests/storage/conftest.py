"""Pytest fixtures for storage tests."""

from pathlib import Path

import pytest

from tabload.core.models import IngestionJob
from tabload.storage import FileUpload, SqlMetadataStore


@pytest.fixture
def upload(store: SqlMetadataStore) -> FileUpload:
    return store.register_upload(name="sales", location="/uploads/sales.csv", user_ref="alice")


@pytest.fixture
def job(upload: FileUpload) -> IngestionJob:
    return IngestionJob(
        file_id=upload.file_id,
        dataset_id=upload.dataset_id,
        source_path=Path(upload.location),
    )
