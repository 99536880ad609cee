"""
Tests de los campos derivados que se muestran en las respuestas.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from models.stock import MovementType
from schemas.product import price_band, rotation
from schemas.stock import elapsed_text, impact_level, reason_category
from schemas.user import initials


@pytest.mark.parametrize("quantity, expected", [
    (None, "Sin información"), (5, "Bajo"), (6, "Medio"), (50, "Medio"), (500, "Alto"), (501, "Muy Alto"),
])
def test_impact_level(quantity, expected):
    assert impact_level(quantity) == expected


class TestTiempoTranscurrido:

    NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)

    def test_units(self):
        assert elapsed_text(self.NOW - timedelta(seconds=1), self.NOW) == "Hace 1 segundo"
        assert elapsed_text(self.NOW - timedelta(minutes=5), self.NOW) == "Hace 5 minutos"
        assert elapsed_text(self.NOW - timedelta(hours=1), self.NOW) == "Hace 1 hora"
        assert elapsed_text(self.NOW - timedelta(days=3), self.NOW) == "Hace 3 días"
        assert elapsed_text(self.NOW - timedelta(days=45), self.NOW) == "Hace más de un mes"

    def test_naive_timestamps_are_utc(self):
        naive = (self.NOW - timedelta(hours=2)).replace(tzinfo=None)
        assert elapsed_text(naive, self.NOW) == "Hace 2 horas"

    def test_unknown(self):
        assert elapsed_text(None) == "Fecha desconocida"


def test_reason_category():
    assert reason_category("Venta a cliente", MovementType.SALIDA) == "Comercial"
    assert reason_category("Compra a proveedor", MovementType.ENTRADA) == "Operacional"
    assert reason_category("Producto dañado", MovementType.SALIDA) == "Merma"
    assert reason_category("Traslado a sucursal", MovementType.SALIDA) == "Transferencia"
    assert reason_category("Otro motivo", MovementType.ENTRADA) == "Entrada"
    assert reason_category("Otro motivo", MovementType.SALIDA) == "Salida"


def test_price_band():
    assert price_band(Decimal("50.00")) == "Económico"
    assert price_band(Decimal("50.01")) == "Intermedio"
    assert price_band(Decimal("1000.00")) == "Alto"
    assert price_band(Decimal("1000.01")) == "Premium"


def test_rotation():
    assert rotation(0, None) == "Sin movimientos"
    assert rotation(12, 2) == "Alta"
    assert rotation(6, 20) == "Media"
    assert rotation(2, 60) == "Baja"


def test_initials():
    assert initials("Gerente Uno", "gerente1") == "GU"
    assert initials("Admin", "admin") == "AD"
    assert initials(None, "empleado1") == "EM"
