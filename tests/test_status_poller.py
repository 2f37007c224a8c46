"""Tests du suivi périodique de statut."""

import httpx

from dashboard_partenaire.services.status_poller import StatusPoller


def _status_body(statut: str) -> dict:
    return {
        "remboursement": {"pay_id": "PAY-1", "statut": statut},
        "lengo_status": {"status": "PENDING"},
        "synchronisation": {"statut_synchronise": False},
    }


def _http_client(responses):
    """Client HTTP qui renvoie les réponses dans l'ordre, la dernière en boucle."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        reponse = responses[min(len(seen), len(responses)) - 1]
        if isinstance(reponse, Exception):
            raise reponse
        status_code, body = reponse
        if isinstance(body, str):
            return httpx.Response(status_code, text=body)
        return httpx.Response(status_code, json=body)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")
    return client, seen


async def test_poller_stops_on_terminal_status():
    client, seen = _http_client([
        (200, _status_body("EN_ATTENTE")),
        (200, _status_body("EN_COURS")),
        (200, _status_body("PAYE")),
    ])
    updates = []

    async with client:
        poller = StatusPoller("PAY-1", client, interval=0, max_attempts=10, on_update=updates.append)
        result = await poller.run()

    assert result["remboursement"]["statut"] == "PAYE"
    assert poller.attempts == 3
    assert [u["remboursement"]["statut"] for u in updates] == ["EN_ATTENTE", "EN_COURS", "PAYE"]
    assert seen[0].url.path == "/api/v1/remboursements/status/PAY-1"
    assert poller.stopped


async def test_poller_stops_when_screen_closes():
    client, seen = _http_client([(200, _status_body("EN_ATTENTE"))])

    async with client:
        poller = StatusPoller("PAY-1", client, interval=0, max_attempts=10)

        def close_after_two(result):
            if poller.attempts == 2:
                poller.stop()

        poller.on_update = close_after_two
        result = await poller.run()

    assert poller.attempts == 2
    assert len(seen) == 2
    assert result["remboursement"]["statut"] == "EN_ATTENTE"


async def test_poller_gives_up_after_max_attempts():
    client, seen = _http_client([(200, _status_body("EN_COURS"))])

    async with client:
        poller = StatusPoller("PAY-1", client, interval=0, max_attempts=4)
        result = await poller.run()

    assert poller.attempts == 4
    assert len(seen) == 4
    assert result["remboursement"]["statut"] == "EN_COURS"


async def test_poller_tolerates_errors():
    client, _ = _http_client([
        (500, {"error": "Erreur lors de la vérification du statut"}),
        httpx.ConnectError("réseau coupé"),
        (200, _status_body("ANNULEE")),
    ])

    async with client:
        poller = StatusPoller("PAY-1", client, interval=0, max_attempts=10)
        result = await poller.run()

    assert poller.attempts == 3
    assert result["remboursement"]["statut"] == "ANNULEE"


async def test_poller_survives_unreadable_body():
    client, seen = _http_client([
        (200, "<html>maintenance</html>"),
        (200, _status_body("PAYE")),
    ])

    async with client:
        poller = StatusPoller("PAY-1", client, interval=0, max_attempts=5)
        result = await poller.run()

    assert len(seen) == 2
    assert result["remboursement"]["statut"] == "PAYE"


async def test_poll_once_returns_none_on_error():
    client, _ = _http_client([(404, {"error": "Remboursement non trouvé"})])

    async with client:
        poller = StatusPoller("PAY-1", client, interval=0, max_attempts=1)
        assert await poller.poll_once() is None
        assert poller.last_result is None


def test_is_final():
    assert StatusPoller.is_final(_status_body("PAYE"))
    assert StatusPoller.is_final(_status_body("ANNULE"))
    assert not StatusPoller.is_final(_status_body("EN_RETARD"))
    assert not StatusPoller.is_final(None)
