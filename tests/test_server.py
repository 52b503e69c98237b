"""
Tests for the HTTP endpoints.

The service runs in-process behind Starlette's TestClient with a fake
toolchain, so no verifier or compiler is needed.
"""

from __future__ import annotations

import sys

import pytest
from conftest import (
    CALL_SIGNATURE,
    CANDY_ABI,
    CANDY_ADDRESS_HEX,
    CANDY_BYTECODE_HEX,
    DEPLOY_100_SIGNING_HASH,
    SIGNED_CALL_JSON,
    UNSIGNED_CALL_JSON,
    UNSIGNED_CALL_SIGNING_HASH,
    FakeRunner,
    service_toolchain,
)
from starlette.testclient import TestClient

from stainless_service.config import ServiceConfig
from stainless_service.server import build_app
from stainless_service.service import StainlessService


@pytest.fixture
def client(config: ServiceConfig):
    svc = StainlessService(config, FakeRunner(service_toolchain))
    return TestClient(build_app(svc))


class TestVerifyEndpoint:
    def test_verify(self, client):
        response = client.post("/verify", json={"files": {"Candy.scala": "object Candy"}})
        assert response.status_code == 200
        assert response.json() == {"console": "1 valid", "report": '{"Candy.scala": "valid"}'}

    def test_verify_empty(self, client):
        response = client.post("/verify", json={"files": {}})
        assert response.status_code == 200
        assert response.json() == {"console": "", "report": None}

    def test_verify_no_report(self, client):
        response = client.post("/verify", json={"files": {"Broken.scala": "object"}})
        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == -32020
        assert error["data"]["console"] == "Parse error"

    def test_verify_timeout(self, client):
        response = client.post("/verify", json={"files": {"Slow.scala": "object Slow"}})
        assert response.status_code == 504
        assert response.json()["error"]["code"] == -32011

    def test_verify_bad_filename(self, client):
        response = client.post("/verify", json={"files": {"../Candy.scala": ""}})
        assert response.status_code == 500
        assert response.json()["error"]["code"] == -32010

    def test_missing_files(self, client):
        response = client.post("/verify", json={"sources": {}})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == -32602
        assert "files" in response.json()["error"]["message"]

    def test_invalid_json(self, client):
        response = client.post("/verify", content=b"{not json", headers={"content-type": "application/json"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == -32600


def test_bytecode(client):
    response = client.post("/bytecode", json={"files": {"Candy.scala": "object Candy"}})
    assert response.status_code == 200
    assert response.json() == {"contracts": {"Candy.sol": {"abi": CANDY_ABI, "bin": CANDY_BYTECODE_HEX}}}


def test_deploy(client):
    response = client.post(
        "/deploy",
        json={
            "gasLimit": 10_000_000,
            "gasPrice": 1,
            "amount": 0,
            "bytecode": "0x" + CANDY_BYTECODE_HEX,
            "abi": CANDY_ABI,
            "args": ["100"],
        },
    )
    assert response.status_code == 200
    assert response.json()["transaction_hash"] == "0x" + DEPLOY_100_SIGNING_HASH.hex()


def test_transaction(client):
    response = client.post(
        "/transaction",
        json={
            "gasLimit": 10_000_000,
            "gasPrice": 1,
            "amount": 0,
            "contractAddress": CANDY_ADDRESS_HEX,
            "nonce": 1,
            "abi": CANDY_ABI,
            "method": "eatCandy",
            "args": ["10"],
        },
    )
    assert response.status_code == 200
    assert response.json() == {
        "transaction": "0x" + UNSIGNED_CALL_JSON.encode().hex(),
        "transaction_hash": "0x" + UNSIGNED_CALL_SIGNING_HASH.hex(),
    }


def test_transaction_negative_gas(client):
    response = client.post(
        "/transaction",
        json={
            "gasLimit": -1,
            "gasPrice": 1,
            "amount": 0,
            "contractAddress": CANDY_ADDRESS_HEX,
            "nonce": 1,
            "abi": CANDY_ABI,
            "method": "eatCandy",
        },
    )
    assert response.status_code == 400
    assert response.json()["error"]["data"]["path"] == "gasLimit"


def test_transaction_bad_argument(client):
    response = client.post(
        "/transaction",
        json={
            "gasLimit": 1,
            "gasPrice": 1,
            "amount": 0,
            "contractAddress": CANDY_ADDRESS_HEX,
            "nonce": 1,
            "abi": CANDY_ABI,
            "method": "eatCandy",
            "args": ["ten"],
        },
    )
    assert response.status_code == 400
    assert response.json()["error"]["data"]["index"] == 0


def test_transaction_short_address(client):
    response = client.post(
        "/transaction",
        json={
            "gasLimit": 1,
            "gasPrice": 1,
            "amount": 0,
            "contractAddress": "0x1234",
            "nonce": 1,
            "abi": CANDY_ABI,
            "method": "getRemainingCandies",
        },
    )
    assert response.status_code == 400
    assert "20 bytes" in response.json()["error"]["message"]


def test_finalize(client):
    response = client.post(
        "/finalize",
        json={"transaction": UNSIGNED_CALL_JSON.encode().hex(), "signature": CALL_SIGNATURE.hex()},
    )
    assert response.status_code == 200
    assert response.json() == {"transaction": "0x" + SIGNED_CALL_JSON.encode().hex()}


def test_finalize_short_signature(client):
    response = client.post(
        "/finalize",
        json={"transaction": UNSIGNED_CALL_JSON.encode().hex(), "signature": CALL_SIGNATURE[:10].hex()},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == -32041


def test_health_reports_missing_tools(client):
    response = client.get("/health")
    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "degraded"
    assert data["tools"]["verifier"]["found"] is False
    assert data["signer"] == "homestead"


def test_health_ok(config: ServiceConfig):
    cfg = config.with_overrides(verifier_cmd=sys.executable, compiler_cmd=sys.executable)
    client = TestClient(build_app(StainlessService(cfg, FakeRunner())))
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics(client):
    client.post("/verify", json={"files": {}})
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "stainless_http_requests_total" in response.text
    assert "stainless_operations_total" in response.text
