"""
Tests del motor de movimientos: invariantes del saldo, límites y concurrencia.
"""
import threading

import pytest

from config import MovementSettings
from models.product import Product
from models.stock import MovementType, StockMovement
from services.accounts import UserService
from services.movement_engine import INITIAL_STOCK_REASON, MovementEngine
from services.stock_queries import StockQueries
from utils.errors import ErrorCode, ErrorKind, InventoryError
from utils.stock_status import CRITICAL, LOW, NORMAL


def _ledger_balance(db, product_id):
    movements = db.query(StockMovement).filter(StockMovement.product_id == product_id).all()
    return sum(m.quantity if m.type is MovementType.ENTRADA else -m.quantity for m in movements)


class TestEntradaSalida:

    def test_widget_scenario(self, db, engine, make_product, admin):
        """min 10: entrada 100 -> NORMAL, salida 95 -> CRÍTICO, salida 10 rechazada"""
        widget = make_product(stock_minimo=10)

        result = engine.create_entry(widget.id, admin.id, 100)
        assert result.resulting_stock == 100
        assert result.stock_status == NORMAL

        result = engine.create_exit(widget.id, admin.id, 95)
        assert result.previous_stock == 100
        assert result.resulting_stock == 5
        assert result.stock_status == CRITICAL
        assert result.low_stock_alert is True

        with pytest.raises(InventoryError) as exc:
            engine.create_exit(widget.id, admin.id, 10)
        assert exc.value.kind is ErrorKind.INSUFFICIENT_STOCK
        assert exc.value.code == ErrorCode.INSUFFICIENT_STOCK

        db.refresh(widget)
        assert widget.stock_actual == 5
        assert db.query(StockMovement).filter(StockMovement.product_id == widget.id).count() == 2

    def test_exit_of_whole_stock_leaves_zero(self, db, engine, make_product, admin):
        product = make_product(initial_stock=7, stock_minimo=0)
        result = engine.create_exit(product.id, admin.id, 7)
        assert result.resulting_stock == 0

    def test_exit_one_over_stock_is_rejected(self, db, engine, make_product, admin):
        product = make_product(initial_stock=7)
        with pytest.raises(InventoryError) as exc:
            engine.create_exit(product.id, admin.id, 8)
        assert exc.value.kind is ErrorKind.INSUFFICIENT_STOCK
        db.refresh(product)
        assert product.stock_actual == 7

    def test_balance_matches_ledger(self, db, engine, make_product, admin):
        product = make_product(initial_stock=50)
        engine.create_entry(product.id, admin.id, 30, "compra a proveedor")
        engine.create_exit(product.id, admin.id, 45, "venta mostrador")
        engine.create_movement(product.id, admin.id, "entrada", 5)
        db.refresh(product)
        assert product.stock_actual == 40
        assert product.stock_actual == _ledger_balance(db, product.id)

    def test_status_low_between_min_and_one_and_a_half(self, engine, make_product, admin):
        product = make_product(initial_stock=20, stock_minimo=10)
        result = engine.create_exit(product.id, admin.id, 6)
        assert result.resulting_stock == 14
        assert result.stock_status == LOW
        assert result.low_stock_alert is False

    def test_initial_stock_is_a_ledger_entry(self, db, make_product):
        product = make_product(initial_stock=12)
        movements = db.query(StockMovement).filter(StockMovement.product_id == product.id).all()
        assert len(movements) == 1
        assert movements[0].type is MovementType.ENTRADA
        assert movements[0].quantity == 12
        assert movements[0].reason == INITIAL_STOCK_REASON


class TestValidaciones:

    @pytest.mark.parametrize("quantity", [0, -1, 100001])
    def test_quantity_out_of_range(self, engine, make_product, admin, quantity):
        product = make_product(initial_stock=10)
        with pytest.raises(InventoryError) as exc:
            engine.create_entry(product.id, admin.id, quantity)
        assert exc.value.kind is ErrorKind.INVALID_ARGUMENT

    def test_quantity_upper_bound_is_accepted(self, engine, make_product, admin):
        product = make_product()
        result = engine.create_entry(product.id, admin.id, 100000)
        assert result.resulting_stock == 100000

    def test_unknown_product(self, engine, admin):
        with pytest.raises(InventoryError) as exc:
            engine.create_entry(9999, admin.id, 1)
        assert exc.value.kind is ErrorKind.NOT_FOUND

    def test_unknown_user(self, engine, make_product):
        product = make_product()
        with pytest.raises(InventoryError) as exc:
            engine.create_entry(product.id, 9999, 1)
        assert exc.value.kind is ErrorKind.NOT_FOUND

    def test_inactive_user(self, db, engine, make_product, employee):
        product = make_product()
        UserService(db).set_active(employee.id, False)
        with pytest.raises(InventoryError) as exc:
            engine.create_entry(product.id, employee.id, 1)
        assert exc.value.kind is ErrorKind.INVALID_ARGUMENT

    def test_invalid_type(self, engine, make_product, admin):
        product = make_product()
        with pytest.raises(InventoryError) as exc:
            engine.create_movement(product.id, admin.id, "AJUSTE", 1)
        assert exc.value.kind is ErrorKind.INVALID_ARGUMENT

    def test_reason_too_long(self, engine, make_product, admin):
        product = make_product()
        with pytest.raises(InventoryError) as exc:
            engine.create_entry(product.id, admin.id, 1, "x" * 256)
        assert exc.value.kind is ErrorKind.INVALID_ARGUMENT

    def test_reason_default_and_capitalised(self, engine, make_product, admin):
        product = make_product()
        assert engine.create_entry(product.id, admin.id, 1).movement.reason == "Entrada de inventario"
        assert engine.create_entry(product.id, admin.id, 1, "  ajuste anual ").movement.reason == "Ajuste anual"

    def test_max_stock(self, db, make_product, admin):
        engine = MovementEngine(db, MovementSettings(max_stock=100))
        product = make_product(initial_stock=90)
        with pytest.raises(InventoryError) as exc:
            engine.create_entry(product.id, admin.id, 11)
        assert exc.value.kind is ErrorKind.INVALID_ARGUMENT
        db.refresh(product)
        assert product.stock_actual == 90


class TestAlertas:

    def test_listener_called_on_critical_exit(self, db, settings, make_product, admin):
        alerts = []
        engine = MovementEngine(db, settings, on_low_stock=lambda product, result: alerts.append(result))
        product = make_product(initial_stock=15, stock_minimo=10)

        engine.create_exit(product.id, admin.id, 2)
        assert alerts == []
        engine.create_exit(product.id, admin.id, 3)
        assert len(alerts) == 1
        assert alerts[0].resulting_stock == 10


class TestConcurrencia:

    def test_concurrent_exits_never_oversell(self, session_factory, db, make_product, admin):
        product = make_product(initial_stock=20, stock_minimo=0)
        settings = MovementSettings(max_retries=20)
        outcomes = []
        barrier = threading.Barrier(10)

        def worker():
            session = session_factory()
            try:
                barrier.wait()
                MovementEngine(session, settings).create_exit(product.id, admin.id, 3)
                outcomes.append("ok")
            except InventoryError as exc:
                outcomes.append(exc.code)
            finally:
                session.close()

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        successes = outcomes.count("ok")
        assert len(outcomes) == 10
        assert successes * 3 <= 20
        assert set(outcomes) <= {"ok", ErrorCode.INSUFFICIENT_STOCK, ErrorCode.CONCURRENT_MODIFICATION}

        check = session_factory()
        try:
            stored = check.get(Product, product.id)
            assert stored.stock_actual == 20 - successes * 3
            assert stored.stock_actual >= 0
            assert StockQueries(check, settings).product_summary(product.id).consistent
        finally:
            check.close()
