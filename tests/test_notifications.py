"""Tests des notifications partenaires."""

from dashboard_partenaire.models import Notification
from dashboard_partenaire.services.notification_service import NotificationEmitter, NotificationInbox


def test_emit_creates_unread_notification(db, partner):
    notification, created = NotificationEmitter(db).emit(
        partner.id,
        "Paiement réussi",
        "Votre paiement a été traité avec succès",
        type="success",
        metadata={"pay_id": "P1"},
    )

    assert created is True
    assert notification.lu is False
    assert notification.meta == {"pay_id": "P1"}
    assert notification.idempotency_key is None


def test_emit_without_key_is_not_deduplicated(db, partner):
    emitter = NotificationEmitter(db)
    emitter.emit(partner.id, "Info", "Message")
    emitter.emit(partner.id, "Info", "Message")

    assert db.query(Notification).count() == 2


def test_emit_same_key_returns_existing(db, partner):
    emitter = NotificationEmitter(db)
    first, created_first = emitter.emit(partner.id, "A", "a", idempotency_key="sync:P1:PAYE")
    second, created_second = emitter.emit(partner.id, "B", "b", idempotency_key="sync:P1:PAYE")

    assert created_first is True
    assert created_second is False
    assert second.id == first.id
    assert second.titre == "A"
    assert db.query(Notification).count() == 1


def test_emit_resolves_concurrent_insert(db, partner, monkeypatch):
    """Un doublon inséré entre la lecture et l'écriture est retrouvé après l'échec."""
    emitter = NotificationEmitter(db)
    existing, _ = emitter.emit(partner.id, "Premier", "x", idempotency_key="webhook:TX:success")

    real_find = emitter._find_by_key
    calls = []

    def find_after_race(key):
        calls.append(key)
        if len(calls) == 1:
            return None
        return real_find(key)

    monkeypatch.setattr(emitter, "_find_by_key", find_after_race)

    notification, created = emitter.emit(partner.id, "Second", "y", idempotency_key="webhook:TX:success")

    assert created is False
    assert notification.id == existing.id
    assert len(calls) == 2
    assert db.query(Notification).count() == 1


def test_inbox_is_scoped_to_partner(db, partner, other_partner):
    emitter = NotificationEmitter(db)
    emitter.emit(partner.id, "Pour nous", "x", type="success")
    emitter.emit(partner.id, "Info", "y", type="info")
    emitter.emit(other_partner.id, "Pour eux", "z")

    inbox = NotificationInbox(db)
    items, total = inbox.list(partner.id)
    assert total == 2
    assert {n.titre for n in items} == {"Pour nous", "Info"}

    items, total = inbox.list(partner.id, type_filter="success")
    assert total == 1
    assert inbox.unread_count(partner.id) == 2


def test_inbox_mark_read(db, partner, other_partner):
    emitter = NotificationEmitter(db)
    ours, _ = emitter.emit(partner.id, "A", "a")
    theirs, _ = emitter.emit(other_partner.id, "B", "b")

    inbox = NotificationInbox(db)
    read = inbox.mark_read(partner.id, ours.id)

    assert read.lu is True
    assert read.read_at is not None
    assert inbox.unread_count(partner.id) == 0
    assert inbox.mark_read(partner.id, theirs.id) is None
    assert db.get(Notification, theirs.id).lu is False


def test_inbox_mark_all_read(db, partner, other_partner):
    emitter = NotificationEmitter(db)
    for i in range(3):
        emitter.emit(partner.id, f"N{i}", "x")
    emitter.emit(other_partner.id, "Autre", "x")

    assert NotificationInbox(db).mark_all_read(partner.id) == 3
    assert NotificationInbox(db).unread_count(partner.id) == 0
    assert NotificationInbox(db).unread_count(other_partner.id) == 1


def test_api_list_and_unread_count(client, db, partner, auth_headers):
    emitter = NotificationEmitter(db)
    emitter.emit(partner.id, "Paiement réussi", "ok", type="success", metadata={"pay_id": "P1"})
    emitter.emit(partner.id, "Info", "info")

    response = client.get("/api/v1/notifications", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["unread_count"] == 2
    assert data["page"] == 1
    assert data["pages"] == 1
    success = next(n for n in data["items"] if n["type"] == "success")
    assert success["metadata"] == {"pay_id": "P1"}

    response = client.get("/api/v1/notifications/unread-count", headers=auth_headers)
    assert response.json() == {"unread_count": 2}


def test_api_mark_read_and_read_all(client, db, partner, other_partner, auth_headers):
    emitter = NotificationEmitter(db)
    first, _ = emitter.emit(partner.id, "A", "a")
    emitter.emit(partner.id, "B", "b")
    theirs, _ = emitter.emit(other_partner.id, "C", "c")

    response = client.post(f"/api/v1/notifications/{first.id}/read", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["lu"] is True

    response = client.post(f"/api/v1/notifications/{theirs.id}/read", headers=auth_headers)
    assert response.status_code == 404

    response = client.post("/api/v1/notifications/read-all", headers=auth_headers)
    assert response.json() == {"marked_count": 1}

    response = client.get("/api/v1/notifications?unread_only=true", headers=auth_headers)
    assert response.json()["total"] == 0


def test_api_notifications_require_auth(client):
    assert client.get("/api/v1/notifications").status_code == 401
