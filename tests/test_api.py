from datetime import timedelta

import pytest
from django.utils import timezone

from apps.historial.auditoria import RegistroAuditoria
from apps.historial.models import Accion, TipoEntidad, CambiosEntradaStock
from services.firebase_service import ErrorProveedorIdentidad

DETERGENTE = {
    'name': 'Detergente',
    'quantity': 0,
    'price': 5000,
    'category': 'Lavado',
    'supplier': 'Química Sur',
}


def test_api_root(api_client, store):
    response = api_client.get('/api/')
    assert response.status_code == 200
    assert response.json()['endpoints']['productos'] == '/api/productos/'


def test_sin_identidad_no_accede(api_client, store):
    assert api_client.get('/api/productos/').status_code == 403


def test_token_invalido(api_client, store, monkeypatch):
    def _invalido(token):
        raise ValueError('token mal formado')

    monkeypatch.setattr('apps.autenticacion.middleware.verificar_token', _invalido)
    api_client.credentials(HTTP_AUTHORIZATION='Bearer basura')

    response = api_client.get('/api/productos/')
    assert response.status_code == 401
    assert response.json()['error'] == 'Token inválido'


def test_uid_sin_perfil_no_accede(api_client, store, token_firebase):
    api_client.credentials(HTTP_AUTHORIZATION='Bearer desconocido')
    assert api_client.get('/api/productos/').status_code == 403


class TestProductos:

    def test_crear_y_reponer(self, cliente_admin, store):
        response = cliente_admin.post('/api/productos/', DETERGENTE, format='json')
        assert response.status_code == 201
        producto_id = response.json()['id']

        response = cliente_admin.post(
            f'/api/productos/{producto_id}/agregar-stock/', {'cantidad': 50}, format='json',
        )
        assert response.status_code == 200
        assert response.json() == {'id': producto_id, 'quantity': 50}

        detalle = cliente_admin.get(f'/api/productos/{producto_id}/').json()
        assert detalle['quantity'] == 50
        assert detalle['supplier'] == 'Química Sur'

        acciones = sorted(r.action.value for r in RegistroAuditoria(store).recientes())
        assert acciones == ['add_stock', 'create']

    def test_nombre_con_numeros(self, cliente_admin, store):
        response = cliente_admin.post('/api/productos/', {**DETERGENTE, 'name': 'Cloro 5L'}, format='json')
        assert response.status_code == 400
        assert 'name' in response.json()['detalle']

    def test_operario_no_crea(self, cliente_operario, store):
        response = cliente_operario.post('/api/productos/', DETERGENTE, format='json')
        assert response.status_code == 403

    def test_retiro_insuficiente(self, cliente_operario, store):
        store.sembrar('productos', 'p1', {**DETERGENTE, 'quantity': 5})

        response = cliente_operario.post('/api/productos/p1/retirar-stock/', {'cantidad': 10}, format='json')

        assert response.status_code == 400
        assert response.json()['campo'] == 'quantity'
        assert store.obtener('productos', 'p1')['quantity'] == 5
        assert RegistroAuditoria(store).recientes() == []

    def test_cantidad_cero(self, cliente_operario, store):
        store.sembrar('productos', 'p1', {**DETERGENTE, 'quantity': 5})
        response = cliente_operario.post('/api/productos/p1/agregar-stock/', {'cantidad': 0}, format='json')
        assert response.status_code == 400

    def test_reposicion_por_edicion(self, cliente_operario, store):
        store.sembrar('productos', 'p1', {**DETERGENTE, 'quantity': 5})

        response = cliente_operario.patch(
            '/api/productos/p1/', {'quantity': 20, 'es_reposicion': True}, format='json',
        )

        assert response.status_code == 200
        [registro] = RegistroAuditoria(store).recientes()
        assert registro.action.value == 'add_stock'

    def test_eliminar(self, cliente_admin, store):
        store.sembrar('productos', 'p1', dict(DETERGENTE))

        assert cliente_admin.delete('/api/productos/p1/').status_code == 204
        assert cliente_admin.get('/api/productos/p1/').status_code == 404
        assert cliente_admin.delete('/api/productos/p1/').status_code == 404


class TestProveedores:

    def test_operario_solo_lee(self, cliente_operario, store):
        store.sembrar('proveedores', 's1', {'name': 'Química Sur'})

        assert cliente_operario.get('/api/proveedores/').json()[0]['name'] == 'Química Sur'
        response = cliente_operario.post('/api/proveedores/', {'name': 'Otro'}, format='json')
        assert response.status_code == 403

    def test_admin_crea_y_edita(self, cliente_admin, store):
        response = cliente_admin.post(
            '/api/proveedores/', {'name': 'Química Sur', 'email': 'ventas@qsur.cl'}, format='json',
        )
        assert response.status_code == 201
        proveedor_id = response.json()['id']

        response = cliente_admin.patch(f'/api/proveedores/{proveedor_id}/', {'phone': '555'}, format='json')
        assert response.status_code == 200
        assert store.obtener('proveedores', proveedor_id)['phone'] == '555'


class TestHistorial:

    @pytest.fixture
    def movimientos(self, store, cliente_admin):
        store.sembrar('productos', 'p1', {**DETERGENTE, 'quantity': 30})
        cliente_admin.post('/api/productos/p1/retirar-stock/', {'cantidad': 5}, format='json')
        cliente_admin.post('/api/productos/p1/agregar-stock/', {'cantidad': 10}, format='json')
        cliente_admin.patch('/api/productos/p1/', {'price': 5500}, format='json')
        return cliente_admin

    def test_listar_filtrado(self, movimientos):
        response = movimientos.get('/api/historial/', {'accion': 'remove_stock'})

        assert response.status_code == 200
        [fila] = response.json()
        assert fila['detalle'] == 'Salida: -5 unids. (30 -> 25)'
        assert fila['descripcion'] == 'Ana retiró del inventario "Detergente"'

    def test_listar_del_mas_nuevo_al_mas_antiguo(self, movimientos):
        acciones = [fila['action'] for fila in movimientos.get('/api/historial/').json()]
        assert acciones == ['update', 'add_stock', 'remove_stock']

    def test_resumen(self, movimientos):
        assert movimientos.get('/api/historial/resumen/').json() == {
            'total': 3, 'creates': 0, 'updates': 1, 'deletes': 0, 'stockChanges': 2,
        }

    def test_reporte(self, movimientos):
        reporte = movimientos.get('/api/historial/reporte/', {'rango': 'today'}).json()

        assert len(reporte['filas']) == 3
        assert reporte['stock'][0]['quantity'] == 35
        assert reporte['conteosStock']['ok'] == 1

    def test_filtro_invalido(self, movimientos):
        assert movimientos.get('/api/historial/', {'accion': 'borrar'}).status_code == 400
        assert movimientos.get('/api/historial/', {'limite': 'muchos'}).status_code == 400


class TestDashboard:

    def test_admin_ve_actividad(self, cliente_admin, store):
        store.sembrar('productos', 'p1', {**DETERGENTE, 'quantity': 30})
        store.sembrar('productos', 'p2', {**DETERGENTE, 'name': 'Cloro', 'quantity': 3})
        cliente_admin.post('/api/productos/p1/retirar-stock/', {'cantidad': 2}, format='json')

        datos = cliente_admin.get('/api/dashboard/').json()

        assert datos['kpis'] == {'total_productos': 2, 'bajo_stock': 1, 'stock_medio': 0, 'stock_ok': 1}
        assert [p['name'] for p in datos['bajo_stock']] == ['Cloro']
        assert datos['actividad_reciente'][0]['descripcion'] == 'Ana retiró del inventario "Detergente"'

    def test_operario_sin_actividad(self, cliente_operario, store):
        for i in range(12):
            store.sembrar('productos', f'p{i}', {**DETERGENTE, 'quantity': i})

        datos = cliente_operario.get('/api/dashboard/').json()

        assert datos['actividad_reciente'] == []
        assert len(datos['bajo_stock']) == 10
        assert datos['hay_mas_bajo_stock'] is False
        assert cliente_operario.get('/api/dashboard/kpis/').json()['bajo_stock'] == 10


class TestAutenticacion:

    def test_login_con_password(self, api_client, perfiles, monkeypatch):
        monkeypatch.setattr(
            'apps.autenticacion.views.iniciar_sesion_con_password',
            lambda email, password: {'localId': 'admin-1', 'idToken': 'id', 'refreshToken': 'r'},
        )

        response = api_client.post(
            '/api/auth/login/', {'email': 'ana@lavanderia.cl', 'password': 'secreta'}, format='json',
        )

        assert response.status_code == 200
        assert response.json()['user']['role'] == 'admin'
        assert api_client.get('/api/auth/me/').json()['user']['displayName'] == 'Ana'

    def test_login_credenciales_invalidas(self, api_client, perfiles, monkeypatch):
        def _rechaza(email, password):
            raise ErrorProveedorIdentidad('INVALID_PASSWORD')

        monkeypatch.setattr('apps.autenticacion.views.iniciar_sesion_con_password', _rechaza)

        response = api_client.post(
            '/api/auth/login/', {'email': 'ana@lavanderia.cl', 'password': 'x'}, format='json',
        )
        assert response.status_code == 401

    def test_login_sin_password(self, api_client, store):
        response = api_client.post('/api/auth/login/', {'email': 'ana@lavanderia.cl'}, format='json')
        assert response.status_code == 400

    def test_vincular_token_y_cerrar_sesion(self, api_client, perfiles, monkeypatch):
        revocados = []
        monkeypatch.setattr('apps.autenticacion.views.revocar_sesiones', revocados.append)

        response = api_client.post('/api/auth/token/', {'token': 'op-1'}, format='json')
        assert response.status_code == 200
        assert api_client.get('/api/auth/me/').json()['user']['role'] == 'operario'

        assert api_client.post('/api/auth/logout/').status_code == 204
        assert revocados == ['op-1']
        assert api_client.get('/api/auth/me/').status_code == 403

    def test_token_desconocido_invitado(self, api_client, store, settings):
        settings.TOKEN_LINK_POLICY = 'invitado'

        response = api_client.post('/api/auth/token/', {'token': 'externo'}, format='json')

        assert response.status_code == 200
        assert response.json()['user']['invitado'] is True
        assert api_client.get('/api/productos/').status_code == 200
        assert api_client.post('/api/productos/x/agregar-stock/', {'cantidad': 1}, format='json').status_code == 403

    def test_token_desconocido_rechazado(self, api_client, store):
        assert api_client.post('/api/auth/token/', {'token': 'externo'}, format='json').status_code == 401


class TestHistorialVolumen:

    @pytest.fixture
    def sesenta_entradas(self, store, cliente_admin):
        auditoria = RegistroAuditoria(store)
        for i in range(60):
            auditoria.registrar(
                Accion.AGREGAR_STOCK, TipoEntidad.PRODUCTO, f'p{i}', 'admin-1', 'Ana',
                entidad_nombre='Detergente', cambios=CambiosEntradaStock(i, i + 1),
            )
        auditoria.registrar(Accion.CREAR, TipoEntidad.PROVEEDOR, 's1', 'admin-1', 'Ana')
        store.sembrar('historial', 'viejo', {
            'action': 'add_stock', 'entityType': 'product', 'entityId': 'p0',
            'userId': 'admin-1', 'userName': 'Ana',
            'timestamp': timezone.now() - timedelta(days=40),
        })
        return cliente_admin

    def test_resumen_cuenta_todo_el_rango(self, sesenta_entradas):
        resumen = sesenta_entradas.get('/api/historial/resumen/', {'rango': 'today'}).json()

        assert resumen['total'] == 61
        assert resumen['stockChanges'] == 60

    def test_resumen_filtrado_por_accion(self, sesenta_entradas):
        resumen = sesenta_entradas.get('/api/historial/resumen/', {'accion': 'add_stock'}).json()
        assert resumen['total'] == 61

    def test_reporte_incluye_todas_las_filas(self, sesenta_entradas):
        reporte = sesenta_entradas.get('/api/historial/reporte/', {'rango': 'today', 'tipo': 'product'}).json()
        assert len(reporte['filas']) == 60

    def test_listado_respeta_el_limite(self, sesenta_entradas):
        assert len(sesenta_entradas.get('/api/historial/').json()) == 50
        assert len(sesenta_entradas.get('/api/historial/', {'limite': 5}).json()) == 5

    def test_documento_ilegible_no_rompe_el_listado(self, sesenta_entradas, store):
        store.sembrar('historial', 'roto', {'entityType': 'product', 'timestamp': timezone.now()})
        store.sembrar('historial', 'raro', {'action': 'archivar', 'entityType': 'product', 'timestamp': timezone.now()})

        response = sesenta_entradas.get('/api/historial/', {'limite': 500})

        assert response.status_code == 200
        assert len(response.json()) == 62


@pytest.fixture
def tokens_renovables(monkeypatch):
    """Bearer <uid>:<iat>; un iat nuevo equivale a un ID token renovado."""

    def _verificar(token):
        uid, iat = token.split(':')
        return {'uid': uid, 'iat': int(iat)}

    monkeypatch.setattr('apps.autenticacion.middleware.verificar_token', _verificar)


@pytest.fixture
def lecturas_perfil(perfiles, monkeypatch):
    lecturas = []
    obtener = perfiles.obtener

    def _contar(coleccion, doc_id):
        if coleccion == 'usuarios':
            lecturas.append(doc_id)
        return obtener(coleccion, doc_id)

    monkeypatch.setattr(perfiles, 'obtener', _contar)
    return lecturas


class TestSesionPorToken:

    def test_perfil_se_lee_una_vez_por_token(self, api_client, tokens_renovables, lecturas_perfil):
        api_client.credentials(HTTP_AUTHORIZATION='Bearer op-1:1')
        assert api_client.get('/api/productos/').status_code == 200
        assert api_client.get('/api/productos/').status_code == 200
        assert lecturas_perfil == ['op-1']

        api_client.credentials(HTTP_AUTHORIZATION='Bearer op-1:2')
        assert api_client.get('/api/productos/').status_code == 200
        assert lecturas_perfil == ['op-1', 'op-1']

    def test_token_renovado_toma_el_rol_actual(self, api_client, perfiles, tokens_renovables):
        api_client.credentials(HTTP_AUTHORIZATION='Bearer op-1:1')
        assert api_client.get('/api/auth/me/').json()['user']['role'] == 'operario'

        perfiles.actualizar('usuarios', 'op-1', {'rol': 'administrador'})
        api_client.credentials(HTTP_AUTHORIZATION='Bearer op-1:2')
        assert api_client.get('/api/auth/me/').json()['user']['role'] == 'admin'

    def test_fallo_de_consulta_conserva_la_sesion_del_mismo_uid(self, api_client, perfiles, tokens_renovables):
        api_client.credentials(HTTP_AUTHORIZATION='Bearer op-1:1')
        assert api_client.get('/api/auth/me/').status_code == 200

        perfiles.fallar_en.add('usuarios')
        api_client.credentials(HTTP_AUTHORIZATION='Bearer op-1:2')
        response = api_client.get('/api/auth/me/')

        assert response.status_code == 200
        assert response.json()['user']['uid'] == 'op-1'
        assert response.json()['user']['role'] == 'operario'

        api_client.credentials(HTTP_AUTHORIZATION='Bearer admin-1:3')
        assert api_client.get('/api/auth/me/').status_code == 403
