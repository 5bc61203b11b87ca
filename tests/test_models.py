import dataclasses

import pytest

from pokitdok.models import ReplayOrder, RequestDescriptor, Session


def test_descriptor_defaults_to_get() -> None:
    descriptor = RequestDescriptor(path="/payers/")

    assert descriptor.method == "GET"
    assert descriptor.query_params() is None


def test_descriptor_normalizes_method() -> None:
    assert RequestDescriptor(path="/claims/", method="post").method == "POST"


@pytest.mark.parametrize("path", ["", None])
def test_descriptor_requires_path(path) -> None:
    with pytest.raises(ValueError, match="path"):
        RequestDescriptor(path=path)


def test_descriptor_rejects_unknown_method() -> None:
    with pytest.raises(ValueError, match="Unsupported HTTP method"):
        RequestDescriptor(path="/payers/", method="BREW")


def test_descriptor_is_immutable_and_detached_from_caller() -> None:
    query = {"zip_code": "32218", "cpt_code": None}
    descriptor = RequestDescriptor(path="/prices/cash", query=query)

    query["zip_code"] = "94401"

    assert descriptor.query_params() == {"zip_code": "32218"}
    assert query == {"zip_code": "94401", "cpt_code": None}
    with pytest.raises(dataclasses.FrozenInstanceError):
        descriptor.path = "/other"
    with pytest.raises(TypeError):
        descriptor.query["zip_code"] = "00000"


def test_new_session_has_no_token() -> None:
    session = Session(client_id="id", client_secret="secret")

    assert session.api_version == "v4"
    assert session.access_token is None
    assert session.refresh_in_flight is False
    assert session.retry_queue == []


def test_session_repr_hides_secrets() -> None:
    session = Session(client_id="id", client_secret="top-secret", access_token="tok")

    assert "top-secret" not in repr(session)
    assert "'tok'" not in repr(session)


def test_replay_order_values() -> None:
    assert ReplayOrder("lifo") is ReplayOrder.LIFO
    assert ReplayOrder("fifo") is ReplayOrder.FIFO
