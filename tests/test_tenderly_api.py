"""Mocked Tenderly provisioning API tests.

These tests mock the HTTP session to test request building and reply parsing
without a Tenderly account.
"""

import json
from unittest.mock import Mock, patch

import pytest
import requests

from eth_sandbox.tenderly.api import ForkInfo, ProvisioningFailure, TenderlyAPI

FORK_ID = "7c3f9ee1-9f4d-4a3b-a2f0-5b7e3d1c9a11"


def _response(status_code: int, data=None, text: str | None = None) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status_code
    resp.url = "https://api.tenderly.co/api/v1/mock"
    if text is not None:
        resp._content = text.encode("utf-8")
    elif data is not None:
        resp._content = json.dumps(data).encode("utf-8")
    else:
        resp._content = b""
    return resp


def _fork_reply(fork_id=FORK_ID, network_id="1", block_number=19_000_000) -> dict:
    return {
        "simulation_fork": {
            "id": fork_id,
            "network_id": network_id,
            "block_number": block_number,
        }
    }


@pytest.fixture()
def session() -> requests.Session:
    session = requests.Session()
    session.request = Mock(return_value=_response(200, _fork_reply()))
    return session


@pytest.fixture()
def api(session) -> TenderlyAPI:
    return TenderlyAPI("test-key", account="acme", project="sandboxes", session=session)


def test_auth_header(api, session):
    assert session.headers["X-Access-Key"] == "test-key"
    assert session.headers["Content-Type"] == "application/json"


def test_create_fork(api, session):
    fork = api.create_fork(1)

    assert fork == ForkInfo(fork_id=FORK_ID, chain_id=1, block_number=19_000_000)

    session.request.assert_called_once()
    method, url = session.request.call_args.args
    assert method == "POST"
    assert url == "https://api.tenderly.co/api/v1/account/acme/project/sandboxes/fork"
    assert session.request.call_args.kwargs["json"] == {"network_id": 1}
    assert session.request.call_args.kwargs["timeout"] == api.timeout


def test_create_fork_at_block(api, session):
    api.create_fork(42161, block_number=200_000_000)
    assert session.request.call_args.kwargs["json"] == {"network_id": 42161, "block_number": 200_000_000}


def test_create_fork_reply_without_network(api, session):
    session.request.return_value = _response(200, {"simulation_fork": {"id": FORK_ID}})
    fork = api.create_fork(10)
    assert fork.chain_id == 10
    assert fork.block_number is None


def test_clone_fork(api, session):
    session.request.return_value = _response(200, _fork_reply(fork_id="clone-1", network_id=10))
    fork = api.clone_fork(FORK_ID)

    assert fork.fork_id == "clone-1"
    assert fork.chain_id == 10
    method, url = session.request.call_args.args
    assert url.endswith("/clone-fork")
    assert session.request.call_args.kwargs["json"] == {"fork_id": FORK_ID}


def test_fetch_chain_id(api, session):
    session.request.return_value = _response(200, _fork_reply(network_id="42161"))
    assert api.fetch_chain_id(FORK_ID) == 42161
    method, url = session.request.call_args.args
    assert method == "GET"
    assert url.endswith(f"/fork/{FORK_ID}")


def test_fetch_chain_id_missing(api, session):
    session.request.return_value = _response(200, {"simulation_fork": {"id": FORK_ID}})
    with pytest.raises(ProvisioningFailure):
        api.fetch_chain_id(FORK_ID)


def test_credit_native_balance(api, session):
    session.request.return_value = _response(200)
    api.credit_native_balance(FORK_ID, ["0x" + "bb" * 20], 1000)

    method, url = session.request.call_args.args
    assert method == "POST"
    assert url.endswith(f"/fork/{FORK_ID}/balance")
    assert session.request.call_args.kwargs["json"] == {"accounts": ["0x" + "bb" * 20], "amount": 1000}


def test_http_error(api, session):
    session.request.return_value = _response(403, {"error": {"message": "invalid access key"}})
    with pytest.raises(ProvisioningFailure) as exc_info:
        api.create_fork(1)
    assert "403" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, requests.HTTPError)


def test_timeout(api, session):
    session.request.side_effect = requests.exceptions.Timeout("Read timed out")
    with pytest.raises(ProvisioningFailure):
        api.create_fork(1)


def test_not_json(api, session):
    session.request.return_value = _response(200, text="<html>Bad gateway</html>")
    with pytest.raises(ProvisioningFailure):
        api.create_fork(1)


def test_malformed_reply(api, session):
    session.request.return_value = _response(200, {"fork": {"id": FORK_ID}})
    with pytest.raises(ProvisioningFailure):
        api.create_fork(1)


def test_from_environment():
    env = {"TENDERLY_ACCESS_KEY": "env-key", "TENDERLY_ACCOUNT": "acme", "TENDERLY_PROJECT": "p"}
    with patch.dict("os.environ", env):
        api = TenderlyAPI.from_environment()
    assert api.project_url == "https://api.tenderly.co/api/v1/account/acme/project/p"
    assert api.session.headers["X-Access-Key"] == "env-key"


def test_from_environment_no_key():
    with patch.dict("os.environ", {"TENDERLY_ACCESS_KEY": ""}):
        with pytest.raises(ProvisioningFailure):
            TenderlyAPI.from_environment()
