"""
Tests de consultas de agregación sobre el libro de movimientos.
"""
from datetime import datetime, timedelta, timezone

import pytest

from models.stock import MovementType
from utils.errors import ErrorKind, InventoryError


def _window():
    now = datetime.now(timezone.utc)
    return now - timedelta(days=1), now + timedelta(days=1)


class TestResumenProducto:

    def test_sums_without_movements_are_zero(self, queries, make_product):
        product = make_product()
        assert queries.sum_entries(product.id) == 0
        assert queries.sum_exits(product.id) == 0

    def test_summary_is_consistent(self, queries, engine, make_product, admin):
        product = make_product(initial_stock=40, stock_minimo=10)
        engine.create_exit(product.id, admin.id, 25)
        summary = queries.product_summary(product.id)
        assert summary.total_entries == 40
        assert summary.total_exits == 25
        assert summary.computed_stock == 15
        assert summary.stock_actual == 15
        assert summary.consistent
        assert summary.stock_status == "BAJO"

    def test_summary_unknown_product(self, queries):
        with pytest.raises(InventoryError) as exc:
            queries.product_summary(424242)
        assert exc.value.kind is ErrorKind.NOT_FOUND


class TestEstadisticasPeriodo:

    def test_stats_for_period(self, queries, engine, make_product, admin):
        product = make_product(initial_stock=10)
        engine.create_entry(product.id, admin.id, 5)
        engine.create_exit(product.id, admin.id, 3)
        start, end = _window()

        stats = queries.stats_for_period(start, end)
        assert stats.entry_count == 2
        assert stats.exit_count == 1
        assert stats.entry_units == 15
        assert stats.exit_units == 3
        assert stats.net_difference == 12
        assert stats.total_movements == 3
        assert round(stats.entry_percentage + stats.exit_percentage) == 100

    def test_empty_period(self, queries):
        start, end = _window()
        stats = queries.stats_for_period(start, end)
        assert stats.total_movements == 0
        assert stats.entry_percentage == 0.0

    def test_end_before_start(self, queries):
        start, end = _window()
        with pytest.raises(InventoryError) as exc:
            queries.stats_for_period(end, start)
        assert exc.value.kind is ErrorKind.INVALID_ARGUMENT

    def test_range_over_a_year(self, queries):
        end = datetime.now(timezone.utc)
        with pytest.raises(InventoryError) as exc:
            queries.stats_for_period(end - timedelta(days=366), end)
        assert exc.value.kind is ErrorKind.INVALID_ARGUMENT

    def test_reads_are_repeatable(self, queries, engine, make_product, admin):
        product = make_product(initial_stock=10)
        engine.create_exit(product.id, admin.id, 4)
        start, end = _window()
        assert queries.stats_for_period(start, end) == queries.stats_for_period(start, end)
        assert queries.product_summary(product.id) == queries.product_summary(product.id)


class TestProductosMasMovidos:

    def test_ranked_by_movement_count(self, queries, engine, make_product, admin):
        busy = make_product(name="Martillo", initial_stock=10)
        quiet = make_product(name="Clavos", initial_stock=10)
        for _ in range(3):
            engine.create_exit(busy.id, admin.id, 1)
        start, end = _window()

        ranking = queries.top_moved_products(start, end, 10)
        assert [r.product_id for r in ranking] == [busy.id, quiet.id]
        assert ranking[0].total_movements == 4
        assert ranking[0].entry_units == 10
        assert ranking[0].exit_units == 3
        assert ranking[0].net_difference == 7

    @pytest.mark.parametrize("limit", [0, 101])
    def test_limit_bounds(self, queries, limit):
        start, end = _window()
        with pytest.raises(InventoryError):
            queries.top_moved_products(start, end, limit)


class TestEstadoStock:

    def test_low_and_critical_lists(self, queries, make_product):
        critical = make_product(name="Critico", initial_stock=5, stock_minimo=10)
        low = make_product(name="Bajo", initial_stock=14, stock_minimo=10)
        make_product(name="Normal", initial_stock=50, stock_minimo=10)

        assert {p.id for p in queries.critical_stock_products()} == {critical.id}
        assert {p.id for p in queries.low_stock_products()} == {critical.id, low.id}

    def test_stock_stats(self, queries, make_product):
        make_product(name="Agotado", initial_stock=0, stock_minimo=2)
        make_product(name="Bajo", initial_stock=2, stock_minimo=2)
        make_product(name="Normal", initial_stock=100, stock_minimo=2)
        make_product(name="Otro normal", initial_stock=80, stock_minimo=2)

        stats = queries.stock_stats()
        assert stats.total_products == 4
        assert stats.out_of_stock == 1
        assert stats.low_stock == 2
        assert stats.low_stock_percentage == 50.0
        assert stats.out_of_stock_percentage == 25.0


class TestLibro:

    def test_history_pages_newest_first(self, queries, engine, make_product, admin):
        product = make_product(initial_stock=10)
        for _ in range(4):
            engine.create_exit(product.id, admin.id, 1)

        items, total = queries.history(1, 2)
        assert total == 5
        assert len(items) == 2
        assert items[0].id > items[1].id

    def test_filters(self, queries, engine, make_product, admin, category):
        product = make_product(initial_stock=10)
        engine.create_exit(product.id, admin.id, 2, "Devolución al proveedor")

        assert len(queries.by_product(product.id)) == 2
        assert len(queries.by_user(admin.id)) == 2
        assert len(queries.by_type("salida")) == 1
        assert queries.count_by_type(MovementType.ENTRADA) == 1
        assert len(queries.by_category(category.id)) == 2
        assert len(queries.search_reason("devolución")) == 1
        assert len(queries.recent(1)) == 2
        assert len(queries.latest_by_user(admin.id, 1)) == 1

    def test_invalid_inputs(self, queries):
        with pytest.raises(InventoryError):
            queries.recent(0)
        with pytest.raises(InventoryError):
            queries.search_reason("   ")
        with pytest.raises(InventoryError):
            queries.by_type("OTRO")
        with pytest.raises(InventoryError) as exc:
            queries.get_movement(999)
        assert exc.value.kind is ErrorKind.NOT_FOUND


class TestLimitesDelPeriodo:
    """El periodo [inicio, fin] incluye ambos extremos."""

    def test_movement_at_start_is_included(self, queries, engine, make_product, admin):
        product = make_product()
        movement = engine.create_entry(product.id, admin.id, 5).movement
        start = movement.created_at
        end = start + timedelta(hours=1)

        assert queries.stats_for_period(start, end).entry_count == 1
        assert [m.id for m in queries.by_date_range(start, end)] == [movement.id]
        assert [r.product_id for r in queries.top_moved_products(start, end, 10)] == [product.id]

    def test_movement_at_end_is_included(self, queries, engine, make_product, admin):
        product = make_product()
        movement = engine.create_entry(product.id, admin.id, 5).movement
        end = movement.created_at
        assert queries.stats_for_period(end - timedelta(hours=1), end).entry_count == 1

