import logging
from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest

from savings_pay.models.goal import DepositMode
from savings_pay.models.payment import Payment, PaymentChannel, PaymentState

CARD = {
    "usuario_id": 1,
    "tipo_metodo": "tarjeta",
    "numero_tarjeta": "4111111111111111",
    "cvv": "123",
    "fecha_vencimiento": "12/27",
    "nombre_titular": "Ana Pérez",
}


def register_card(http, **overrides):
    return http.post("/api/pagos/registrar-metodo-pago", json={**CARD, **overrides})


def test_health(client):
    http, _ = client

    response = http.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestRegisterPaymentMethod:
    def test_card_is_exchanged_for_reference(self, client):
        http, _ = client

        response = register_card(http)

        assert response.status_code == 201
        body = response.json()
        assert body["referencia_pago"].startswith("REF_")
        assert body["ultimos_digitos"] == "1111"
        assert "4111111111111111" not in response.text

    def test_short_card_number_is_rejected(self, client):
        http, engine = client

        response = register_card(http, numero_tarjeta="411111111111")

        assert response.status_code == 400
        assert response.json() == {"error": "Número de tarjeta inválido"}

    def test_bank_account_without_number_is_rejected(self, client):
        http, _ = client

        response = http.post(
            "/api/pagos/registrar-metodo-pago",
            json={"usuario_id": 1, "tipo_metodo": "cuenta_bancaria", "banco": "BBVA"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Número de cuenta requerido"

    def test_unknown_method_kind_is_a_validation_error(self, client):
        http, _ = client

        response = register_card(http, tipo_metodo="cheque")

        assert response.status_code == 400
        assert response.json()["error"] == "Datos inválidos"

    def test_listing_shows_masked_references_only(self, client):
        http, _ = client
        token = register_card(http).json()["referencia_pago"]
        register_card(http, usuario_id=2)

        response = http.get("/api/pagos/metodos-pago/1")

        assert response.status_code == 200
        methods = response.json()
        assert [m["referencia"] for m in methods] == [token]
        assert methods[0]["ultimos_digitos"] == "1111"
        assert "4111111111111111" not in response.text
        assert "cvv" not in methods[0]


class TestCreatePayment:
    def test_accepted_payment(self, client):
        http, engine = client

        response = http.post("/api/pagos", json={"usuario_id": 1, "monto": 250})

        assert response.status_code == 200
        body = response.json()
        assert body["estado"] == "completado"
        assert body["saldo_anterior"] == 10000
        assert body["saldo_posterior"] == 9750
        assert body["saldo_actual"] == 9750
        assert engine.ledger.current() == 9750

    def test_accepted_payment_into_goal(self, client, goal_store):
        http, _ = client
        goal = goal_store.add(nombre="Viaje", monto_objetivo=1000)

        response = http.post("/api/pagos", json={"usuario_id": 1, "monto": 100, "meta_id": goal.id})

        assert response.status_code == 200
        assert goal.monto_actual == 100

    def test_declined_payment_is_recorded_and_answered_400(self, client, payment_ledger):
        http, engine = client
        engine.decide.accept = False

        response = http.post("/api/pagos", json={"usuario_id": 1, "monto": 250})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Pago rechazado por el banco"
        assert body["estado"] == "rechazado"
        assert body["saldo_actual"] == 10000
        assert len(payment_ledger.payments) == 1
        assert engine.ledger.current() == 10000

    def test_insufficient_funds(self, client, payment_ledger):
        http, _ = client

        response = http.post("/api/pagos", json={"usuario_id": 1, "monto": 20000})

        assert response.status_code == 400
        assert response.json() == {
            "error": "Saldo insuficiente",
            "saldo_disponible": 10000,
            "monto_solicitado": 20000,
        }
        assert payment_ledger.payments == []

    def test_refusals_are_logged(self, client, caplog):
        http, _ = client
        caplog.set_level(logging.INFO, logger="savings_pay.core.exceptions")

        http.post("/api/pagos", json={"usuario_id": 1, "monto": 20000})

        assert any(
            "InsufficientFunds on POST /api/pagos" in r.getMessage() and r.levelno == logging.INFO
            for r in caplog.records
        )

    def test_card_reference_fills_masked_details(self, client):
        http, _ = client
        token = register_card(http).json()["referencia_pago"]

        response = http.post("/api/pagos", json={"usuario_id": 1, "monto": 10, "referencia_pago": token})

        body = response.json()
        assert body["metodo_pago"] == "tarjeta"
        assert body["numero_tarjeta"] == "1111"
        assert body["nombre_titular"] == "Ana Pérez"

    def test_foreign_reference_is_rejected(self, client, payment_ledger):
        http, _ = client
        token = register_card(http, usuario_id=2).json()["referencia_pago"]

        response = http.post("/api/pagos", json={"usuario_id": 1, "monto": 10, "referencia_pago": token})

        assert response.status_code == 400
        assert response.json()["error"] == "Referencia de pago no válida"
        assert payment_ledger.payments == []

    def test_unknown_goal_is_404(self, client):
        http, engine = client

        response = http.post("/api/pagos", json={"usuario_id": 1, "monto": 10, "meta_id": 99})

        assert response.status_code == 404
        assert response.json()["error"] == "Meta no encontrada"
        assert engine.ledger.current() == 10000

    @pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_amount_is_a_validation_error(self, client, payment_ledger, literal):
        http, engine = client

        response = http.post(
            "/api/pagos",
            content=f'{{"usuario_id": 1, "monto": {literal}}}',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Datos inválidos"
        assert engine.ledger.current() == 10000
        assert payment_ledger.payments == []

    def test_missing_amount_is_a_validation_error(self, client):
        http, _ = client

        response = http.post("/api/pagos", json={"usuario_id": 1})

        assert response.status_code == 400
        assert response.json()["error"] == "Datos inválidos"


class TestAutomaticPayments:
    def test_without_payment_method(self, client):
        http, _ = client

        response = http.post("/api/pagos/procesar-automaticos", json={"usuario_id": 1})

        assert response.status_code == 400
        assert response.json()["error"] == "No hay método de pago registrado para pagos automáticos"

    def test_batch_results(self, client, goal_store):
        http, engine = client
        register_card(http)
        goal_store.add(
            nombre="Fondo", monto_objetivo=1000,
            tipo_deposito=DepositMode.automatico, monto_automatico=300,
        )
        goal_store.add(nombre="Manual", monto_objetivo=1000)

        response = http.post("/api/pagos/procesar-automaticos", json={"usuario_id": 1})

        assert response.status_code == 200
        body = response.json()
        assert body["procesados"] == 1
        entry = body["resultados"][0]
        assert entry["meta_nombre"] == "Fondo"
        assert entry["estado"] == "completado"
        assert body["saldo_actual"] == 9700
        assert engine.ledger.current() == 9700


class TestReadEndpoints:
    def test_balance(self, client):
        http, engine = client
        engine.ledger.try_debit(500)

        response = http.get("/api/pagos/saldo")

        assert response.status_code == 200
        assert response.json() == {"saldo": 9500}

    def test_history_includes_goal_name(self, client):
        http, _ = client
        payment = Payment(
            id=7, usuario_id=1, meta_id=3, monto=50.0, descripcion=None, tipo="meta_ahorro",
            metodo_pago=PaymentChannel.transferencia, referencia_pago=None, numero_tarjeta=None,
            nombre_titular=None, estado=PaymentState.completado, saldo_anterior=100.0,
            saldo_posterior=50.0, automatico=False, fecha_creacion=datetime(2025, 1, 1),
        )

        with patch(
            "savings_pay.api.v1.routes.payments.list_payments",
            AsyncMock(return_value=[(payment, "Viaje")]),
        ) as list_mock:
            response = http.get("/api/pagos", params={"usuario_id": 1})

        assert response.status_code == 200
        assert list_mock.call_args.args[0] == 1
        history = response.json()
        assert history[0]["id"] == 7
        assert history[0]["meta_nombre"] == "Viaje"

    def test_stats(self, client):
        http, _ = client
        stats = {
            "total_pagos": 3,
            "pagos_completados": 2,
            "pagos_rechazados": 1,
            "monto_total_completado": 150.0,
        }

        with patch("savings_pay.api.v1.routes.payments.get_payment_stats", AsyncMock(return_value=stats)):
            response = http.get("/api/pagos/estadisticas")

        assert response.status_code == 200
        assert response.json() == stats

    def test_diagnostics_do_not_list_tokens(self, client):
        http, _ = client
        token = register_card(http).json()["referencia_pago"]

        with patch("savings_pay.api.v1.routes.payments.count_payments", AsyncMock(return_value=4)):
            response = http.get("/api/pagos/diagnostico")

        assert response.status_code == 200
        assert response.json() == {"total_registros": 4, "saldo_actual": 10000, "referencias_activas": 1}
        assert token not in response.text

    def test_unexpected_error_is_generic_500(self, client):
        http, _ = client

        with patch(
            "savings_pay.api.v1.routes.payments.get_payment_stats",
            AsyncMock(side_effect=RuntimeError("password=secret")),
        ):
            response = http.get("/api/pagos/estadisticas")

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
