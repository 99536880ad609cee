"""
Tests de API con TestClient: autenticación, permisos por rol y formato de errores.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from models.category import Category


def _create_product(client, headers, category_id, name="Taladro", stock=20, minimo=5, price="99.90"):
    r = client.post("/api/productos", headers=headers, json={
        "nombre": name,
        "descripcion": "Taladro percutor",
        "precio": price,
        "stockMinimo": minimo,
        "categoriaId": category_id,
        "stockInicial": stock,
    })
    assert r.status_code == 201, r.text
    return r.json()


def _assert_error(r, status, code):
    assert r.status_code == status, r.text
    body = r.json()
    assert body["status"] == status
    assert body["code"] == code
    assert body["message"]
    assert body["timestamp"]
    return body


class TestAuth:

    def test_health(self, client):
        r = client.get("/api/health")
        assert r.status_code == 200
        assert r.json()["status"] == "UP"

    def test_login_and_me(self, client):
        r = client.post("/api/auth/login", json={"username": "admin", "password": "admin123"})
        assert r.status_code == 200
        data = r.json()
        assert data["accessToken"] and data["refreshToken"]
        assert data["user"]["rol"]["nombre"] == "ADMIN"
        assert "password" not in data["user"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['accessToken']}"})
        assert me.status_code == 200
        assert me.json()["username"] == "admin"
        assert me.json()["esAdminPrincipal"] is True

    def test_login_by_email(self, client):
        r = client.post("/api/auth/login", json={"username": "admin@tienda.com", "password": "admin123"})
        assert r.status_code == 200

    def test_invalid_credentials(self, client):
        r = client.post("/api/auth/login", json={"username": "admin", "password": "mala"})
        _assert_error(r, 401, "401")

    def test_missing_token(self, client):
        _assert_error(client.get("/api/productos"), 401, "401")

    def test_refresh(self, client):
        tokens = client.post("/api/auth/login", json={"username": "admin", "password": "admin123"}).json()
        r = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
        assert r.status_code == 200
        assert r.json()["sessionId"] == tokens["sessionId"]

        # An access token is not accepted as a refresh token
        r = client.post("/api/auth/refresh", json={"refreshToken": tokens["accessToken"]})
        assert r.status_code == 401

    def test_validate_and_logout(self, client, admin_headers):
        r = client.get("/api/auth/validate", headers=admin_headers)
        assert r.status_code == 200
        assert r.json()["valid"] is True
        assert r.json()["role"] == "ADMIN"
        assert client.post("/api/auth/logout", headers=admin_headers).status_code == 200

    def test_inactive_user_loses_access(self, client, admin_headers, employee, employee_headers):
        r = client.patch(f"/api/usuarios/{employee.id}/desactivar", headers=admin_headers)
        assert r.status_code == 200
        assert r.json()["activo"] is False
        assert client.get("/api/productos", headers=employee_headers).status_code == 401


class TestPermisos:

    def test_employee_can_read_but_not_write(self, client, employee_headers, category):
        assert client.get("/api/productos", headers=employee_headers).status_code == 200
        assert client.get("/api/movimientos", headers=employee_headers).status_code == 200
        r = client.post("/api/categorias", headers=employee_headers, json={"nombre": "Juguetes"})
        _assert_error(r, 403, "403")

    def test_manager_cannot_delete_or_admin_users(self, client, manager_headers, category):
        product = _create_product(client, manager_headers, category.id, stock=0)
        _assert_error(client.delete(f"/api/productos/{product['id']}", headers=manager_headers), 403, "403")
        _assert_error(client.get("/api/usuarios", headers=manager_headers), 403, "403")
        _assert_error(client.get("/api/roles", headers=manager_headers), 403, "403")

    def test_logs_are_admin_only(self, client, admin_headers, manager_headers):
        assert client.get("/api/logs", headers=admin_headers).status_code == 200
        _assert_error(client.get("/api/logs", headers=manager_headers), 403, "403")


class TestMovimientosAPI:

    def test_entry_exit_and_derived_fields(self, client, manager_headers, category, manager):
        product = _create_product(client, manager_headers, category.id, stock=20, minimo=5)
        assert product["stockActual"] == 20
        assert product["estadoStock"] == "NORMAL"

        r = client.post("/api/movimientos/salida", headers=manager_headers, json={
            "productoId": product["id"], "cantidad": 15, "motivo": "venta a cliente",
        })
        assert r.status_code == 201, r.text
        movement = r.json()
        assert movement["tipoMovimiento"] == "SALIDA"
        assert movement["motivo"] == "Venta a cliente"
        assert movement["categoriaMotivo"] == "Comercial"
        assert movement["nivelImpacto"] == "Medio"
        assert movement["esMovimientoMasivo"] is False
        assert movement["stockAnterior"] == 20
        assert movement["stockResultante"] == 5
        assert movement["estadoStockResultante"] == "CRÍTICO"
        assert movement["alertaStockBajo"] is True
        assert movement["usuario"]["id"] == manager.id
        assert Decimal(str(movement["valorMovimiento"])) == Decimal("1498.50")

        history = client.get(f"/api/movimientos/por-producto/{product['id']}", headers=manager_headers).json()
        assert [m["tipoMovimiento"] for m in history] == ["ENTRADA", "SALIDA"]
        assert history[0]["motivo"] == "Stock inicial"

    def test_generic_endpoint_uses_type(self, client, manager_headers, category):
        product = _create_product(client, manager_headers, category.id, stock=0)
        r = client.post("/api/movimientos", headers=manager_headers, json={
            "productoId": product["id"], "tipoMovimiento": "ENTRADA", "cantidad": 200,
        })
        assert r.status_code == 201
        assert r.json()["esMovimientoMasivo"] is True
        assert r.json()["nivelImpacto"] == "Alto"

        r = client.post("/api/movimientos", headers=manager_headers, json={
            "productoId": product["id"], "tipoMovimiento": "AJUSTE", "cantidad": 1,
        })
        _assert_error(r, 400, "400")

    def test_insufficient_stock(self, client, manager_headers, category):
        product = _create_product(client, manager_headers, category.id, stock=3)
        r = client.post("/api/movimientos/salida", headers=manager_headers, json={
            "productoId": product["id"], "cantidad": 4,
        })
        _assert_error(r, 409, "1001")
        detail = client.get(f"/api/productos/{product['id']}", headers=manager_headers).json()
        assert detail["stockActual"] == 3
        assert detail["totalMovimientos"] == 1

    def test_invalid_quantity(self, client, manager_headers, category):
        product = _create_product(client, manager_headers, category.id)
        for quantity in (0, -5, 100001):
            r = client.post("/api/movimientos/entrada", headers=manager_headers, json={
                "productoId": product["id"], "cantidad": quantity,
            })
            _assert_error(r, 400, "400")

    def test_employee_cannot_register_movements(self, client, manager_headers, employee_headers, category):
        product = _create_product(client, manager_headers, category.id)
        r = client.post("/api/movimientos/entrada", headers=employee_headers, json={
            "productoId": product["id"], "cantidad": 1,
        })
        _assert_error(r, 403, "403")

    def test_summary_and_stats(self, client, manager_headers, category):
        product = _create_product(client, manager_headers, category.id, stock=10)
        client.post("/api/movimientos/salida", headers=manager_headers,
                    json={"productoId": product["id"], "cantidad": 4})

        summary = client.get(f"/api/movimientos/resumen-producto/{product['id']}", headers=manager_headers).json()
        assert summary["totalEntradas"] == 10
        assert summary["totalSalidas"] == 4
        assert summary["stockCalculado"] == summary["stockActual"] == 6
        assert summary["consistente"] is True

        now = datetime.now(timezone.utc)
        params = {"inicio": (now - timedelta(days=1)).isoformat(), "fin": (now + timedelta(days=1)).isoformat()}
        stats = client.get("/api/movimientos/estadisticas", headers=manager_headers, params=params).json()
        assert stats["totalMovimientos"] == 2
        assert stats["diferenciaNeta"] == 6

        top = client.get("/api/movimientos/productos-mas-movidos", headers=manager_headers, params=params).json()
        assert top["productos"][0]["productoId"] == product["id"]

        reversed_params = {"inicio": params["fin"], "fin": params["inicio"]}
        r = client.get("/api/movimientos/estadisticas", headers=manager_headers, params=reversed_params)
        _assert_error(r, 400, "400")

    def test_low_stock_alert_is_audited(self, client, admin_headers, category):
        product = _create_product(client, admin_headers, category.id, stock=6, minimo=5)
        client.post("/api/movimientos/salida", headers=admin_headers,
                    json={"productoId": product["id"], "cantidad": 2})
        logs = client.get("/api/logs", headers=admin_headers, params={"action": "LOW_STOCK_ALERT"}).json()
        assert logs["total"] == 1
        assert logs["items"][0]["meta"]["producto_id"] == product["id"]

    def test_unknown_movement(self, client, admin_headers):
        _assert_error(client.get("/api/movimientos/9999", headers=admin_headers), 404, "404")


class TestGuardas:

    def test_category_with_products(self, client, admin_headers, category):
        _create_product(client, admin_headers, category.id, stock=0)
        r = client.delete(f"/api/categorias/{category.id}", headers=admin_headers)
        _assert_error(r, 409, "1003")

    def test_user_with_movements(self, client, admin_headers, manager, manager_headers, category):
        _create_product(client, manager_headers, category.id, stock=5)
        r = client.delete(f"/api/usuarios/{manager.id}", headers=admin_headers)
        _assert_error(r, 409, "1004")

    def test_role_with_users(self, client, admin_headers):
        role = client.post("/api/roles", headers=admin_headers,
                           json={"nombre": "AUDITOR", "descripcion": "Solo lectura"}).json()
        r = client.post("/api/usuarios", headers=admin_headers, json={
            "username": "auditor1", "password": "clave123", "nombreCompleto": "Ana Auditora",
            "email": "ana@tienda.com", "rolId": role["id"],
        })
        assert r.status_code == 201, r.text
        _assert_error(client.delete(f"/api/roles/{role['id']}", headers=admin_headers), 409, "1005")

    def test_main_admin_cannot_be_deleted(self, client, admin_headers, admin):
        _assert_error(client.delete(f"/api/usuarios/{admin.id}", headers=admin_headers), 409, "409")

    def test_validation_error_payload(self, client, admin_headers):
        r = client.post("/api/categorias", headers=admin_headers, json={"descripcion": "sin nombre"})
        body = _assert_error(r, 400, "422")
        assert body["validationErrors"][0]["field"] == "nombre"

    def test_category_crud(self, client, admin_headers, db):
        r = client.post("/api/categorias", headers=admin_headers, json={"nombre": "Juguetes"})
        assert r.status_code == 201
        category_id = r.json()["id"]
        r = client.put(f"/api/categorias/{category_id}", headers=admin_headers,
                       json={"nombre": "Juguetería", "descripcion": "Juegos"})
        assert r.json()["nombre"] == "Juguetería"
        assert client.delete(f"/api/categorias/{category_id}", headers=admin_headers).status_code == 200
        db.expire_all()
        assert db.get(Category, category_id) is None


class TestUsuarioDelMovimiento:

    def test_defaults_to_authenticated_user(self, client, manager_headers, manager, category):
        product = _create_product(client, manager_headers, category.id, stock=0)
        r = client.post("/api/movimientos/entrada", headers=manager_headers,
                        json={"productoId": product["id"], "cantidad": 2})
        assert r.status_code == 201
        assert r.json()["usuario"]["id"] == manager.id

    def test_zero_user_id_is_rejected(self, client, manager_headers, category):
        product = _create_product(client, manager_headers, category.id, stock=0)
        r = client.post("/api/movimientos/entrada", headers=manager_headers,
                        json={"productoId": product["id"], "usuarioId": 0, "cantidad": 2})
        _assert_error(r, 400, "400")
