import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.api.v1.endpoints.claims import get_claim_service
from app.api.v1.endpoints.config import get_notifier
from app.core.config import NotificationConfig
from app.schemas.claims import ClaimState
from app.services.claims.claim_service import ClaimService
from app.services.notifications.email_notifier import EmailNotifier


@pytest.fixture
def claim():
    return SimpleNamespace(
        id=uuid.uuid4(),
        case_code="SIN-2026-020",
        state=ClaimState.RECEIVED,
        reported_at=None,
        sent_to_insurer_at=None,
        signature_received_at=None,
        settlement_amount=None,
        closed_at=None,
        invalid_reason=None,
    )


@pytest.fixture
def client(test_client, claim):
    from app.main import app

    service = ClaimService(MagicMock())
    service.repository = AsyncMock()
    service.repository.get_by_id.side_effect = lambda claim_id: claim if claim_id == claim.id else None
    service.repository.save.side_effect = lambda c: c
    app.dependency_overrides[get_claim_service] = lambda: service
    return test_client


def test_send_to_insurer(client, claim):
    response = client.post(f"/api/v1/claims/{claim.id}/send-to-insurer")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["state"] == "LIQUIDATION"
    assert data["sent_to_insurer_at"] is not None


def test_disallowed_transition_is_409(client, claim):
    response = client.post(f"/api/v1/claims/{claim.id}/transitions", json={"next_state": "PAYMENT"})

    assert response.status_code == 409
    assert response.json()["detail"]["title"] == "Invalid State Transition"


def test_unknown_claim_is_404(client):
    response = client.post(f"/api/v1/claims/{uuid.uuid4()}/transitions", json={"next_state": "VALIDATING"})

    assert response.status_code == 404


def test_invalidate_requires_reason(client, claim):
    assert client.post(f"/api/v1/claims/{claim.id}/invalidate", json={"reason": ""}).status_code == 422

    response = client.post(f"/api/v1/claims/{claim.id}/invalidate", json={"reason": "Fuera de cobertura"})

    assert response.status_code == 200
    assert response.json()["data"]["state"] == "INVALID"


def test_notification_config_round_trip(test_client):
    from app.main import app

    notifier = EmailNotifier(
        NotificationConfig(recipient_email="gestor@utpl.edu.ec", sender_email="noreply@utpl.edu.ec", api_key="k")
    )
    app.dependency_overrides[get_notifier] = lambda: notifier

    response = test_client.put("/api/v1/config/notifications", json={"recipient_email": "nuevo@utpl.edu.ec"})

    assert response.status_code == 200
    data = test_client.get("/api/v1/config/notifications").json()["data"]
    assert data["recipient_email"] == "nuevo@utpl.edu.ec"
    assert data["sender_email"] == "noreply@utpl.edu.ec"
    assert data["api_key_configured"] is True
    assert "api_key" not in data
