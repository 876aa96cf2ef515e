import pytest

from apps.autenticacion.models import Rol
from apps.autenticacion.resolver import ResolvedorSesion
from apps.comun.excepciones import ErrorAlmacenamiento

CLAVE = 'lavanderia_cobre_session'


@pytest.fixture
def sesion():
    return {}


def resolvedor(store, sesion, politica='rechazar'):
    return ResolvedorSesion(store, sesion, politica_token=politica, roles_admin=['administrador', 'admin'])


def test_resolver_autenticado_mapea_rol_y_guarda(perfiles, sesion):
    usuario = resolvedor(perfiles, sesion).resolver_autenticado('admin-1', 'x@y.cl', 'X')

    assert usuario.role == Rol.ADMIN
    assert usuario.displayName == 'Ana'
    assert usuario.email == 'ana@lavanderia.cl'
    assert sesion[CLAVE]['uid'] == 'admin-1'
    assert 'ultimo_acceso' in perfiles.obtener('usuarios', 'admin-1')


def test_perfil_con_campos_en_ingles(store, sesion):
    store.sembrar('usuarios', 'u2', {'displayName': 'Marta', 'email': 'marta@x.cl', 'role': 'admin'})

    usuario = resolvedor(store, sesion).resolver_autenticado('u2')

    assert usuario.role == Rol.ADMIN
    assert usuario.displayName == 'Marta'


def test_perfil_inexistente_no_toca_sesion(store, sesion):
    sesion[CLAVE] = {'uid': 'otro', 'email': '', 'displayName': 'Otro', 'role': 'operario'}

    assert resolvedor(store, sesion).resolver_autenticado('fantasma') is None
    assert sesion[CLAVE]['uid'] == 'otro'


def test_fallo_de_consulta_no_resuelve(perfiles, sesion, monkeypatch):
    def _falla(*args):
        raise ErrorAlmacenamiento()

    monkeypatch.setattr(perfiles, 'obtener', _falla)
    assert resolvedor(perfiles, sesion).resolver_autenticado('admin-1') is None
    assert CLAVE not in sesion


def test_fallo_ultimo_acceso_no_impide_login(perfiles, sesion, monkeypatch):
    def _falla(*args):
        raise ErrorAlmacenamiento()

    monkeypatch.setattr(perfiles, 'actualizar', _falla)
    assert resolvedor(perfiles, sesion).resolver_autenticado('op-1').role == Rol.OPERARIO


def test_vincular_token_con_perfil(perfiles, sesion):
    usuario = resolvedor(perfiles, sesion).vincular_token('op-1')

    assert usuario.uid == 'op-1'
    assert usuario.displayName == 'Luis'
    assert sesion[CLAVE]['role'] == 'operario'


def test_vincular_token_misma_sesion_no_consulta(store, sesion, monkeypatch):
    sesion[CLAVE] = {'uid': 'op-1', 'email': '', 'displayName': 'Luis', 'role': 'operario'}

    def _no_llamar(*args):
        raise AssertionError('no debía consultar el perfil')

    monkeypatch.setattr(store, 'obtener', _no_llamar)
    assert resolvedor(store, sesion).vincular_token('op-1').displayName == 'Luis'


def test_vincular_token_desconocido_se_rechaza(store, sesion):
    assert resolvedor(store, sesion).vincular_token('nadie') is None
    assert CLAVE not in sesion


def test_vincular_token_desconocido_como_invitado(store, sesion):
    usuario = resolvedor(store, sesion, politica='invitado').vincular_token('nadie')

    assert usuario.invitado
    assert usuario.displayName == 'Invitado'
    assert sesion[CLAVE]['invitado'] is True


def test_invitado_no_reemplaza_sesion_existente(store, sesion):
    sesion[CLAVE] = {'uid': 'admin-1', 'email': '', 'displayName': 'Ana', 'role': 'admin'}

    assert resolvedor(store, sesion, politica='invitado').vincular_token('nadie') is None
    assert sesion[CLAVE]['role'] == 'admin'


def test_vincular_token_vacio(store, sesion):
    assert resolvedor(store, sesion).vincular_token('   ') is None


def test_cerrar_sesion(perfiles, sesion):
    r = resolvedor(perfiles, sesion)
    r.resolver_autenticado('admin-1')
    r.cerrar_sesion()

    assert r.usuario_actual() is None
    r.cerrar_sesion()


def test_mismo_token_no_vuelve_a_consultar(perfiles, sesion, monkeypatch):
    r = resolvedor(perfiles, sesion)
    r.resolver_autenticado('op-1', huella='op-1:1')

    def _no_llamar(*args):
        raise AssertionError('no debía consultar el perfil')

    monkeypatch.setattr(perfiles, 'obtener', _no_llamar)
    assert r.resolver_autenticado('op-1', huella='op-1:1').displayName == 'Luis'

    r.cerrar_sesion()
    assert sesion == {}
