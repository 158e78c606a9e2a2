from pathlib import Path

import pytest

from flexo.domain.errors import ConfirmacionRequerida, MaterialNoEncontrado
from flexo.domain.models import (
    ConfigSistema,
    EstadoOrden,
    Formato,
    Material,
    Receta,
    ResultadoCalculo,
    Sustituto,
    UnidadPedido,
)
from flexo.domain.policies import codigo_orden, etapas_produccion
from flexo.infra.repositories import MaterialRepo, OrdenRepo, ParamsRepo, RecetaRepo, cargar_config
from flexo.infra.seed import run_seed
from flexo.usecases.confirmar_orden import confirmar_orden, planificar_consumo


def _mat(id, stock, nombre=None):
    return Material(id=id, tipo="BOPP", espesor=20, densidad=0.91, ancho=1000,
                    stock_kg=stock, nombre=nombre or id.upper())


def _resultado(capa1=0.0, capa2=0.0, capa3=0.0):
    return ResultadoCalculo(
        metros_netos=1000, metros_brutos=1100, metros_max_tolerancia=1200, metros_merma=100,
        capa1_kg=capa1, capa2_kg=capa2, capa3_kg=capa3, tinta_kg=0.0, adhesivo_kg=0.0,
        total_kg=capa1 + capa2 + capa3,
    )


def _receta(**kw):
    base = dict(id="p", ancho_bobina=840, paso=300, capa1_id="m1")
    base.update(kw)
    return Receta(**base)


# -------------------------
# planificación (sin efectos)
# -------------------------

def test_reparto_original_y_sustituto():
    plan = planificar_consumo(
        _resultado(capa1=120), _receta(), [_mat("m1", 50), _mat("m2", 500)], {"capa1": "m2"}
    )
    assert len(plan.lineas) == 2
    original, complemento = plan.lineas

    assert original.material_id == "m1" and original.kg == 50
    assert not original.es_sustituto
    assert original.material_original_id is None

    assert complemento.material_id == "m2" and complemento.kg == 70
    assert complemento.es_sustituto
    assert complemento.origen == Sustituto(material_original_id="m1")
    assert complemento.capa.endswith("(COMPLEMENTO)")

    assert [(d.material_id, d.kg) for d in plan.descuentos] == [("m1", 50), ("m2", 70)]
    assert not plan.requiere_confirmacion


def test_original_sin_stock_todo_del_sustituto():
    plan = planificar_consumo(
        _resultado(capa1=120), _receta(), [_mat("m1", 0), _mat("m2", 500)], {"capa1": "m2"}
    )
    assert [(ln.material_id, ln.kg) for ln in plan.lineas] == [("m2", 120)]


def test_faltante_sin_sustituto_requiere_confirmacion():
    plan = planificar_consumo(_resultado(capa1=120), _receta(), [_mat("m1", 50)])
    assert plan.requiere_confirmacion
    assert [(ln.material_id, ln.kg) for ln in plan.lineas] == [("m1", 120)]


def test_sustituto_insuficiente_requiere_confirmacion():
    plan = planificar_consumo(
        _resultado(capa1=120), _receta(), [_mat("m1", 50), _mat("m2", 10)], {"capa1": "m2"}
    )
    assert plan.requiere_confirmacion


def test_sustituto_inexistente():
    with pytest.raises(MaterialNoEncontrado):
        planificar_consumo(_resultado(capa1=120), _receta(), [_mat("m1", 50)], {"capa1": "zz"})


def test_material_compartido_entre_capas():
    receta = _receta(capa2_id="m1")
    plan = planificar_consumo(_resultado(capa1=60, capa2=60), receta, [_mat("m1", 100)])
    assert plan.requiere_confirmacion
    assert len(plan.avisos) == 1


def test_capas_con_cero_kg_no_generan_lineas():
    plan = planificar_consumo(_resultado(capa1=10), _receta(capa2_id="m2"), [_mat("m1", 50), _mat("m2", 50)])
    assert [ln.material_id for ln in plan.lineas] == ["m1"]
    assert plan.nombres_capas == ("M1",)


@pytest.mark.parametrize(
    "kw,esperado",
    [
        (dict(formato=Formato.BOBINA), ["Impresión", "Refilado"]),
        (dict(formato=Formato.BOLSA, capa2_id="m2"),
         ["Impresión", "Laminación", "Refilado", "Confección (Bolsera)"]),
        (dict(formato=Formato.BOBINA, capa2_id="m2", capa3_id="m3"),
         ["Impresión", "Laminación", "Trilaminado", "Refilado"]),
    ],
)
def test_etapas_de_produccion(kw, esperado):
    assert etapas_produccion(_receta(**kw)) == esperado


def test_codigo_de_orden():
    assert codigo_orden(1) == "OP-1001"
    assert codigo_orden(42) == "OP-1042"


# -------------------------
# confirmación contra SQLite
# -------------------------

def _ctx(tmp_path: Path):
    db = str(tmp_path / "flexo_test.sqlite")
    run_seed(db)
    receta = RecetaRepo(db).get("LEN-500G")
    return db, receta, MaterialRepo(db), OrdenRepo(db), cargar_config(ParamsRepo(db))


def test_confirmar_descuenta_y_persiste(tmp_path: Path):
    db, receta, materiales, ordenes, config = _ctx(tmp_path)

    orden = confirmar_orden(receta, 10000, UnidadPedido.UNIDADES, 10, materiales, ordenes, config,
                            cliente_nombre="Distribuidora Sur")
    assert orden.codigo == "OP-1001"
    assert orden.id is not None
    assert orden.resultado.metros_brutos == 1288
    assert orden.etapas == ["Impresión", "Laminación", "Refilado", "Confección (Bolsera)"]
    assert orden.detalles.pistas == 4
    assert orden.detalles.capas == ["BOPP Transparente", "PEBD Transparente"]

    m1 = materiales.get("m1")
    assert m1.stock_kg == pytest.approx(1200 - orden.resultado.capa1_kg)

    guardada = ordenes.get("OP-1001")
    assert guardada.estado == EstadoOrden.PENDIENTE
    assert guardada.cliente_nombre == "Distribuidora Sur"
    assert guardada.resultado == orden.resultado
    assert [ln.material_id for ln in guardada.materiales] == ["m1", "m4"]

    segunda = confirmar_orden(receta, 500, UnidadPedido.METROS, 0, materiales, ordenes, config)
    assert segunda.codigo == "OP-1002"
    assert ordenes.count() == 2


def test_stock_negativo_sin_forzar_no_toca_nada(tmp_path: Path):
    db, receta, materiales, ordenes, config = _ctx(tmp_path)

    with pytest.raises(ConfirmacionRequerida) as exc:
        confirmar_orden(receta, 2_000_000, UnidadPedido.UNIDADES, 10, materiales, ordenes, config)
    assert exc.value.avisos
    assert materiales.get("m1").stock_kg == 1200
    assert ordenes.count() == 0

    # la numeración no se consume con una confirmación rechazada
    orden = confirmar_orden(receta, 1000, UnidadPedido.UNIDADES, 10, materiales, ordenes, config)
    assert orden.codigo == "OP-1001"


def test_stock_negativo_forzado_queda_con_signo(tmp_path: Path):
    db, receta, materiales, ordenes, config = _ctx(tmp_path)

    orden = confirmar_orden(receta, 2_000_000, UnidadPedido.UNIDADES, 10, materiales, ordenes, config,
                            forzar=True)
    assert materiales.get("m1").stock_kg == pytest.approx(1200 - orden.resultado.capa1_kg)
    assert materiales.get("m1").stock_kg < 0


def test_confirmar_con_sustituto(tmp_path: Path):
    db, receta, materiales, ordenes, config = _ctx(tmp_path)
    m1 = materiales.get("m1")
    m1.stock_kg = 10.0
    materiales.upsert([m1])

    orden = confirmar_orden(receta, 10000, UnidadPedido.UNIDADES, 10, materiales, ordenes, config,
                            sustitutos={"capa1": "m2"})
    lineas = {ln.material_id: ln for ln in orden.materiales}
    assert lineas["m1"].kg == 10
    assert lineas["m2"].material_original_id == "m1"
    assert materiales.get("m1").stock_kg == pytest.approx(0)
    assert materiales.get("m2").stock_kg == pytest.approx(500 - (orden.resultado.capa1_kg - 10))

    guardada = ordenes.get(orden.codigo)
    assert [ln.es_sustituto for ln in guardada.materiales] == [False, True, False]


def test_actualizar_estado(tmp_path: Path):
    db, receta, materiales, ordenes, config = _ctx(tmp_path)
    orden = confirmar_orden(receta, 1000, UnidadPedido.UNIDADES, 0, materiales, ordenes, config)
    ordenes.actualizar_estado(orden.codigo, EstadoOrden.EN_PRODUCCION)
    assert ordenes.get(orden.codigo).estado == EstadoOrden.EN_PRODUCCION


class _MaterialesQueFallan:
    def __init__(self, catalogo, falla_en):
        self.catalogo = catalogo
        self.falla_en = falla_en
        self.descontados = []

    def get_all(self):
        return list(self.catalogo)

    def descontar(self, material_id, kg):
        if material_id == self.falla_en:
            raise RuntimeError("base bloqueada")
        self.descontados.append((material_id, kg))
        return 0.0


class _OrdenesEnMemoria:
    def __init__(self):
        self.valor = 0
        self.insertadas = []

    def siguiente_secuencia(self):
        self.valor += 1
        return self.valor

    def insert(self, orden):
        self.insertadas.append(orden)
        return len(self.insertadas)


def test_fallo_parcial_se_propaga_sin_crear_orden():
    catalogo = [_mat("m1", 1000), _mat("m2", 1000)]
    receta = _receta(capa2_id="m2")
    materiales = _MaterialesQueFallan(catalogo, falla_en="m2")
    ordenes = _OrdenesEnMemoria()

    with pytest.raises(RuntimeError):
        confirmar_orden(receta, 1000, UnidadPedido.METROS, 0, materiales, ordenes, ConfigSistema())
    assert [m for m, _ in materiales.descontados] == ["m1"]
    assert ordenes.insertadas == []


def test_repos_en_memoria():
    ordenes = _OrdenesEnMemoria()
    materiales = _MaterialesQueFallan([_mat("m1", 1000)], falla_en=None)
    orden = confirmar_orden(_receta(), 1000, UnidadPedido.METROS, 0, materiales, ordenes, ConfigSistema())
    assert orden.codigo == "OP-1001"
    assert orden.id == 1
    assert ordenes.insertadas == [orden]


def test_descuento_y_linea_usan_el_mismo_redondeo():
    plan = planificar_consumo(
        _resultado(capa1=120.37), _receta(), [_mat("m1", 50.1), _mat("m2", 500)], {"capa1": "m2"}
    )
    descuentos = [(d.material_id, d.kg) for d in plan.descuentos]
    lineas = [(ln.material_id, ln.kg) for ln in plan.lineas]
    assert descuentos == lineas
    assert descuentos[1] == ("m2", 70.27)


def test_seed_no_repone_stock_consumido(tmp_path: Path):
    db, receta, materiales, ordenes, config = _ctx(tmp_path)
    orden = confirmar_orden(receta, 10000, UnidadPedido.UNIDADES, 10, materiales, ordenes, config)
    saldo = materiales.get("m1").stock_kg
    assert saldo == pytest.approx(1200 - orden.resultado.capa1_kg)

    res = run_seed(db)
    assert res == {"materiales": 0, "recetas": 0}
    assert materiales.get("m1").stock_kg == saldo


def test_mensajes_de_consola_con_salida_habilitada(monkeypatch, capsys):
    from flexo.infra import logger as flog

    monkeypatch.setattr(flog, "ENABLE_OUTPUT", True)
    for nombre in ("transaction_logger", "stock_logger", "orden_logger", "database_logger", "system_logger"):
        monkeypatch.setattr(getattr(flog, nombre), "handlers", [])
    ordenes = _OrdenesEnMemoria()
    materiales = _MaterialesQueFallan([_mat("m1", 1000)], falla_en=None)
    confirmar_orden(_receta(), 1000, UnidadPedido.METROS, 0, materiales, ordenes, ConfigSistema())

    assert ">> Orden OP-1001 registrada con éxito." in capsys.readouterr().out
