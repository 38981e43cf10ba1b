"""Shared fixtures: a scripted vision model and temporary storage."""

import json

import pytest

from fakes import COFFEE_RECEIPT, FakeVisionModel
from receipt_extractor.client import ReceiptExtractionClient
from receipt_extractor.db import LocalStorage
from receipt_extractor.history import ExtractionHistoryStore
from receipt_extractor.upload import ReceiptFile


@pytest.fixture
def receipt_file():
    return ReceiptFile(name="coffee.jpg", mime_type="image/jpeg", data=b"\xff\xd8\xff\xe0fake-jpeg")


@pytest.fixture
def fake_model():
    return FakeVisionModel(["VALID_RECEIPT", json.dumps(COFFEE_RECEIPT)])


@pytest.fixture
def client(fake_model):
    c = ReceiptExtractionClient(lambda api_key: fake_model, timeout=0.5)
    c.initialize("test-key")
    return c


@pytest.fixture
def storage(tmp_path):
    s = LocalStorage(db_path=tmp_path / "storage.db")
    yield s
    s.close()


@pytest.fixture
def history(storage):
    return ExtractionHistoryStore(storage)
