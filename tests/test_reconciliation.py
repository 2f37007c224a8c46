"""Tests de la synchronisation des statuts avec Lengo Pay."""

from datetime import datetime

import pytest
from sqlalchemy import update

from dashboard_partenaire.core.exceptions import (
    ConcurrentUpdateError,
    PersistenceFailure,
    ProviderUnauthorized,
    ProviderUnavailable,
    RemboursementNotFound,
)
from dashboard_partenaire.models import HistoriqueRemboursement, Notification, Remboursement
from dashboard_partenaire.services.reconciliation_service import (
    ReconciliationService,
    build_status_values,
    map_provider_status,
)
from dashboard_partenaire.services.remboursement_repository import RemboursementRepository


@pytest.mark.parametrize(
    "provider_status,expected",
    [
        ("SUCCESS", "PAYE"),
        ("FAILED", "ANNULEE"),
        ("CANCELLED", "ANNULEE"),
        ("PENDING", "EN_COURS"),
        ("success", "PAYE"),
        (" Pending ", "EN_COURS"),
        ("EXPIRED", "EN_ATTENTE"),
        ("", "EN_ATTENTE"),
        (None, "EN_ATTENTE"),
    ],
)
def test_map_provider_status(provider_status, expected):
    assert map_provider_status(provider_status) == expected


def test_build_status_values_clears_paid_date_outside_paye():
    values = build_status_values("EN_COURS")
    assert values["statut"] == "EN_COURS"
    assert values["date_remboursement_effectue"] is None
    assert "date_annulation" not in values


def _history(db, remboursement_id):
    return (
        db.query(HistoriqueRemboursement)
        .filter(HistoriqueRemboursement.remboursement_id == remboursement_id)
        .all()
    )


async def test_get_status_success_synchronises_to_paye(db, fake_lengo, make_remboursement):
    r = make_remboursement(pay_id="P1")
    fake_lengo.respond("P1", "SUCCESS", date="2024-05-01T10:00:00Z", phone="+224620000002")

    result = await ReconciliationService(db, fake_lengo.client()).get_status("P1")

    assert result.remboursement.statut == "PAYE"
    assert result.synchronisation.statut_synchronise is True
    assert result.synchronisation.ancien_statut == "EN_ATTENTE"
    assert result.synchronisation.nouveau_statut == "PAYE"
    assert result.lengo_status.status == "SUCCESS"

    stored = db.get(Remboursement, r.id)
    assert stored.statut == "PAYE"
    assert stored.date_remboursement_effectue == datetime(2024, 5, 1, 10, 0, 0)
    assert stored.numero_reception == "+224620000002"
    assert stored.version == 2

    history = _history(db, r.id)
    assert len(history) == 1
    assert history[0].action == "SYNCHRONISATION_LENGO"
    assert (history[0].statut_avant, history[0].statut_apres) == ("EN_ATTENTE", "PAYE")

    notification = db.query(Notification).one()
    assert notification.partenaire_id == r.partenaire_id
    assert notification.type == "success"
    assert notification.idempotency_key == "sync:P1:2"
    assert notification.lu is False


async def test_second_payment_after_revert_is_notified(db, fake_lengo, make_remboursement):
    make_remboursement(pay_id="P1")
    service = ReconciliationService(db, fake_lengo.client())

    fake_lengo.respond("P1", "SUCCESS")
    await service.get_status("P1")
    fake_lengo.respond("P1", "UNKNOWN")
    await service.get_status("P1")
    fake_lengo.respond("P1", "SUCCESS")
    result = await service.get_status("P1")

    assert result.synchronisation.statut_synchronise is True
    assert result.synchronisation.nouveau_statut == "PAYE"
    paid = db.query(Notification).filter(Notification.titre == "Remboursement payé").all()
    assert sorted(n.idempotency_key for n in paid) == ["sync:P1:2", "sync:P1:4"]
    assert db.query(Notification).count() == 3


async def test_paye_without_provider_date_uses_now(db, fake_lengo, make_remboursement):
    r = make_remboursement(pay_id="P1")
    fake_lengo.respond("P1", "SUCCESS")
    before = datetime.utcnow()

    await ReconciliationService(db, fake_lengo.client()).get_status("P1")

    stored = db.get(Remboursement, r.id)
    assert stored.date_remboursement_effectue is not None
    assert stored.date_remboursement_effectue >= before.replace(microsecond=0)


async def test_get_status_failed_cancels(db, fake_lengo, make_remboursement):
    r = make_remboursement(pay_id="P2")
    fake_lengo.respond("P2", "FAILED")

    result = await ReconciliationService(db, fake_lengo.client()).get_status("P2")

    assert result.remboursement.statut == "ANNULEE"
    assert result.synchronisation.statut_synchronise is True
    stored = db.get(Remboursement, r.id)
    assert stored.statut == "ANNULEE"
    assert stored.date_annulation is not None
    assert stored.date_remboursement_effectue is None
    assert db.query(Notification).one().type == "error"


async def test_leaving_paye_clears_paid_date(db, fake_lengo, make_remboursement):
    r = make_remboursement(
        pay_id="P3",
        statut="PAYE",
        date_remboursement_effectue=datetime(2024, 1, 1),
    )
    fake_lengo.respond("P3", "PENDING")

    await ReconciliationService(db, fake_lengo.client()).get_status("P3")

    stored = db.get(Remboursement, r.id)
    assert stored.statut == "EN_COURS"
    assert stored.date_remboursement_effectue is None


async def test_get_status_does_not_write_when_equal(db, fake_lengo, make_remboursement):
    r = make_remboursement(pay_id="P4", statut="PAYE", date_remboursement_effectue=datetime(2024, 1, 1))
    fake_lengo.respond("P4", "SUCCESS")

    result = await ReconciliationService(db, fake_lengo.client()).get_status("P4")

    assert result.synchronisation.statut_synchronise is False
    assert result.synchronisation.nouveau_statut == "PAYE"
    stored = db.get(Remboursement, r.id)
    assert stored.version == 1
    assert _history(db, r.id) == []
    assert db.query(Notification).count() == 0


async def test_get_status_provider_timeout_returns_stored_status(db, fake_lengo, lengo_timeout, make_remboursement):
    r = make_remboursement(pay_id="P5")
    fake_lengo.raise_for("P5", lengo_timeout)

    result = await ReconciliationService(db, fake_lengo.client()).get_status("P5")

    assert result.remboursement.statut == "EN_ATTENTE"
    assert result.lengo_status is None
    assert result.synchronisation.statut_synchronise is False
    assert result.synchronisation.erreur
    assert db.get(Remboursement, r.id).version == 1


async def test_get_status_unauthorized_propagates(db, fake_lengo, make_remboursement):
    make_remboursement(pay_id="P6")
    fake_lengo.respond_raw("P6", 401, '{"error": "Unauthorized !"}')

    with pytest.raises(ProviderUnauthorized):
        await ReconciliationService(db, fake_lengo.client()).get_status("P6")


async def test_get_status_unknown_pay_id(db, fake_lengo):
    with pytest.raises(RemboursementNotFound):
        await ReconciliationService(db, fake_lengo.client()).get_status("INCONNU")
    assert fake_lengo.requests == []


async def test_get_status_scoped_to_partner(db, fake_lengo, make_remboursement, other_partner):
    make_remboursement(pay_id="P7")
    fake_lengo.respond("P7", "SUCCESS")

    service = ReconciliationService(db, fake_lengo.client())
    with pytest.raises(RemboursementNotFound):
        await service.get_status("P7", other_partner.id)


async def test_get_status_write_conflict_is_not_fatal(db, fake_lengo, make_remboursement, monkeypatch):
    r = make_remboursement(pay_id="P8")
    fake_lengo.respond("P8", "SUCCESS")
    service = ReconciliationService(db, fake_lengo.client())

    def conflict(remboursement, expected_version, values):
        raise ConcurrentUpdateError(remboursement.pay_id, expected_version)

    monkeypatch.setattr(service.repository, "compare_and_swap", conflict)

    result = await service.get_status("P8")

    assert result.remboursement.statut == "EN_ATTENTE"
    assert result.synchronisation.statut_synchronise is False
    assert result.synchronisation.nouveau_statut == "PAYE"
    assert result.synchronisation.erreur
    assert db.get(Remboursement, r.id).statut == "EN_ATTENTE"
    assert db.query(Notification).count() == 0


async def test_get_status_persistence_failure_is_not_fatal(db, fake_lengo, make_remboursement, monkeypatch):
    make_remboursement(pay_id="P9")
    fake_lengo.respond("P9", "FAILED")
    service = ReconciliationService(db, fake_lengo.client())

    def broken(remboursement, expected_version, values):
        raise PersistenceFailure("Erreur lors de la mise à jour du remboursement")

    monkeypatch.setattr(service.repository, "compare_and_swap", broken)

    result = await service.get_status("P9")

    assert result.remboursement.statut == "EN_ATTENTE"
    assert result.synchronisation.statut_synchronise is False


async def test_force_sync_is_idempotent(db, fake_lengo, make_remboursement):
    r = make_remboursement(pay_id="F1")
    fake_lengo.respond("F1", "SUCCESS")
    service = ReconciliationService(db, fake_lengo.client())

    first = await service.force_sync("F1")
    second = await service.force_sync("F1")

    assert first.success is True
    assert first.remboursement.ancien_statut == "EN_ATTENTE"
    assert first.remboursement.nouveau_statut == "PAYE"
    assert second.remboursement.ancien_statut == "PAYE"
    assert second.remboursement.nouveau_statut == "PAYE"
    assert second.remboursement.synchronise is True

    stored = db.get(Remboursement, r.id)
    assert stored.statut == "PAYE"
    assert stored.version == 3
    assert len(_history(db, r.id)) == 2
    # Une seule notification: le second passage ne change pas le statut
    assert db.query(Notification).count() == 1


async def test_force_sync_provider_unavailable_is_fatal(db, fake_lengo, lengo_timeout, make_remboursement):
    r = make_remboursement(pay_id="F2")
    fake_lengo.raise_for("F2", lengo_timeout)

    with pytest.raises(ProviderUnavailable):
        await ReconciliationService(db, fake_lengo.client()).force_sync("F2")
    assert db.get(Remboursement, r.id).version == 1


async def test_force_sync_conflict_surfaces(db, fake_lengo, make_remboursement, monkeypatch):
    make_remboursement(pay_id="F3")
    fake_lengo.respond("F3", "SUCCESS")
    service = ReconciliationService(db, fake_lengo.client())

    def conflict(remboursement, expected_version, values):
        raise ConcurrentUpdateError(remboursement.pay_id, expected_version)

    monkeypatch.setattr(service.repository, "compare_and_swap", conflict)

    with pytest.raises(ConcurrentUpdateError):
        await service.force_sync("F3")


def test_stale_version_write_is_rejected(db, make_remboursement):
    r = make_remboursement(pay_id="C1")
    repository = RemboursementRepository(db)
    stale_version = r.version

    # Un autre écrivain passe avant nous
    db.execute(
        update(Remboursement)
        .where(Remboursement.id == r.id)
        .values(statut="ANNULE", version=Remboursement.version + 1)
    )
    db.commit()

    with pytest.raises(ConcurrentUpdateError):
        repository.compare_and_swap(r, stale_version, {"statut": "PAYE"})

    stored = db.get(Remboursement, r.id)
    assert stored.statut == "ANNULE"
    assert stored.version == 2


def test_compare_and_swap_increments_version(db, make_remboursement):
    r = make_remboursement(pay_id="C2")
    repository = RemboursementRepository(db)

    repository.compare_and_swap(r, 1, {"statut": "EN_COURS"})
    repository.commit()

    stored = db.get(Remboursement, r.id)
    assert stored.statut == "EN_COURS"
    assert stored.version == 2
