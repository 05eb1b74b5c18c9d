import io

import pytest
from werkzeug.datastructures import FileStorage

from track_ai.saras.stub_client import STUB_PROJECTS, SarasStubClient


def test_same_idempotency_key_returns_same_entry():
    client = SarasStubClient()

    first = client.create_process("sub-1", {"a": 1}, "key-1")
    second = client.create_process("sub-1", {"a": 2}, "key-1")
    other = client.create_process("sub-1", {"a": 1}, "key-2")

    assert first.entry_id == second.entry_id
    assert other.entry_id != first.entry_id
    assert first.success


def test_without_key_every_call_is_new():
    client = SarasStubClient()

    assert client.create_process("sub-1", {}).entry_id != client.create_process("sub-1", {}).entry_id


def test_projects_are_paginated():
    client = SarasStubClient()

    page1 = client.get_projects_for_user(1, 2)
    page2 = client.get_projects_for_user(2, 2)

    assert page1.total_pages == 2
    assert page1.total_count == len(STUB_PROJECTS)
    assert [p.external_id for p in page1.projects + page2.projects] == [p["external_id"] for p in STUB_PROJECTS]


def test_invalid_arguments():
    client = SarasStubClient()

    with pytest.raises(ValueError):
        client.get_projects_for_user(0, 10)
    with pytest.raises(ValueError):
        client.create_process(" ", {})
    with pytest.raises(ValueError):
        client.upload_files([])


def test_upload_returns_one_id_per_file():
    client = SarasStubClient()
    files = [
        FileStorage(stream=io.BytesIO(b"x"), filename="a.jpg", content_type="image/jpeg"),
        FileStorage(stream=io.BytesIO(b"y"), filename="b.pdf", content_type="application/pdf"),
    ]

    response = client.upload_files(files)

    assert len(response.file_ids) == 2
    assert len(set(response.file_ids)) == 2


def test_workflow_uses_default_id():
    response = SarasStubClient(default_workflow_id="wf-1").execute_workflow()

    assert response.workflow_id == "wf-1"
    assert response.status == "completed"


def test_stub_client_reports_stub_mode():
    assert SarasStubClient().is_stub_mode()


def test_workflow_without_any_id_is_rejected_like_live():
    client = SarasStubClient()

    with pytest.raises(ValueError):
        client.execute_workflow()
    assert client.execute_workflow("wf-explicit").workflow_id == "wf-explicit"
