from math import ceil, isclose

import pytest

from flexo.domain.errors import CantidadInvalida, MaterialNoEncontrado
from flexo.domain.formulas import peso_bobina
from flexo.domain.models import ConfigSistema, Formato, Material, Receta, UnidadPedido
from flexo.usecases.calcular_produccion import (
    analizar_stock,
    calcular_requerimientos,
    metros_netos,
)
from flexo.usecases.confirmar_orden import planificar_consumo


def _bopp(id="m1", nombre="BOPP Transparente", ancho=850, stock=1200.0, espesor=20):
    return Material(id=id, tipo="BOPP", espesor=espesor, densidad=0.91, ancho=ancho,
                    stock_kg=stock, nombre=nombre)


def _pe(id="m4", stock=2000.0):
    return Material(id=id, tipo="PE", espesor=40, densidad=0.92, ancho=850,
                    stock_kg=stock, nombre="PEBD Transparente")


def _receta(**kw):
    base = dict(id="p1", ancho_bobina=840, paso=300, capa1_id="m1", pistas=4, formato=Formato.BOLSA)
    base.update(kw)
    return Receta(**base)


CONFIG = ConfigSistema(metros_arranque=500, merma_variable=0.05)


def test_escenario_bolsa_monocapa_10000_unidades():
    res = calcular_requerimientos(10000, 10, UnidadPedido.UNIDADES, _receta(), [_bopp()], CONFIG)

    assert res.metros_netos == 750
    assert res.metros_merma == 538
    assert res.metros_brutos == 1288
    # 1287.5 + 750 * 0.10
    assert res.metros_max_tolerancia == 1363
    # explosión sobre los metros brutos sin redondear
    assert res.capa1_kg == round(peso_bobina(840, 1287.5, 20, 0.91), 2)
    assert abs(res.capa1_kg - peso_bobina(840, 1288, 20, 0.91)) < 0.02
    assert res.capa2_kg == 0 and res.capa3_kg == 0
    assert res.adhesivo_kg == 0
    assert res.total_kg == res.capa1_kg


@pytest.mark.parametrize("cantidad,pistas", [(5000, 4), (1000, 3), (777, 1), (10, 7)])
def test_metros_reparte_entre_pistas(cantidad, pistas):
    res = calcular_requerimientos(
        cantidad, 0, UnidadPedido.METROS, _receta(pistas=pistas), [_bopp()], CONFIG
    )
    assert res.metros_netos == ceil(cantidad / pistas)


@pytest.mark.parametrize("formato", [Formato.BOBINA, Formato.BOLSA])
def test_unidades_misma_formula_para_ambos_formatos(formato):
    receta = _receta(formato=formato, paso=275, pistas=3)
    res = calcular_requerimientos(12345, 5, UnidadPedido.UNIDADES, receta, [_bopp()], CONFIG)
    assert res.metros_netos == ceil(12345 * 275 / (3 * 1000))


def test_redondeo_sobre_la_suma_final():
    config = ConfigSistema(metros_arranque=0.4, merma_variable=0.0)
    # netos = 1 * 300 / 4000 = 0.075 ; brutos = 0.475
    res = calcular_requerimientos(1, 0, UnidadPedido.UNIDADES, _receta(), [_bopp()], config)
    assert res.metros_netos == 1
    assert res.metros_merma == 1
    assert res.metros_brutos == 1  # no 1 + 1


@pytest.mark.parametrize("tolerancia", [0, 1, 10, 50])
def test_tolerancia_nunca_menor_que_brutos(tolerancia):
    res = calcular_requerimientos(8000, tolerancia, UnidadPedido.UNIDADES, _receta(), [_bopp()], CONFIG)
    assert res.metros_max_tolerancia >= res.metros_brutos


def test_merma_especifica_de_receta_sobrescribe_la_global():
    res = calcular_requerimientos(
        10000, 0, UnidadPedido.UNIDADES, _receta(merma_especifica=0.10), [_bopp()], CONFIG
    )
    assert res.metros_merma == 575  # 500 + 750 * 0.10


def test_pistas_cero_cuentan_como_una():
    res = calcular_requerimientos(1000, 0, UnidadPedido.METROS, _receta(pistas=0), [_bopp()], CONFIG)
    assert res.metros_netos == 1000


def test_adhesivo_por_interfaz_y_total():
    catalogo = [_bopp(), _pe(), _bopp(id="m9", nombre="BOPP Sellante")]
    receta = _receta(pistas=1, capa2_id="m4", capa3_id="m9", cobertura_tinta=3.5, cobertura_adhesivo=2.0)
    config = ConfigSistema(metros_arranque=0, merma_variable=0)
    res = calcular_requerimientos(1000, 0, UnidadPedido.METROS, receta, catalogo, config)

    assert res.metros_brutos == 1000
    assert isclose(res.tinta_kg, 2.94)
    assert isclose(res.adhesivo_kg, 3.36)  # 2 * 840 m2 * 2 g/m2
    assert isclose(res.capa2_kg, 30.91)
    suma = res.capa1_kg + res.capa2_kg + res.capa3_kg + res.tinta_kg + res.adhesivo_kg
    assert abs(res.total_kg - suma) <= 0.01


def test_kilos_calculo_inverso():
    receta = _receta(pistas=1)
    # 0.84 * 20 * 0.91 / 1000 = 0.015288 kg por metro
    assert isclose(metros_netos(15.288, UnidadPedido.KILOS, receta, [_bopp()]), 1000.0, rel_tol=1e-9)


def test_kilos_sin_capa1_es_error_tipado():
    with pytest.raises(MaterialNoEncontrado) as exc:
        calcular_requerimientos(100, 0, UnidadPedido.KILOS, _receta(capa1_id="nope"), [_bopp()], CONFIG)
    assert exc.value.capa == "Capa 1"
    assert exc.value.material_id == "nope"


def test_unidades_sin_capa1_aporta_cero():
    res = calcular_requerimientos(1000, 0, UnidadPedido.UNIDADES, _receta(capa1_id="nope"), [_bopp()], CONFIG)
    assert res.capa1_kg == 0
    assert res.metros_brutos > 0


def test_kilos_con_masa_por_metro_nula():
    mat = Material(id="m1", tipo="BOPP", espesor=20, densidad=0, ancho=850, stock_kg=10)
    with pytest.raises(CantidadInvalida):
        calcular_requerimientos(100, 0, UnidadPedido.KILOS, _receta(), [mat], CONFIG)


@pytest.mark.parametrize("cantidad,tolerancia", [(0, 10), (-5, 10), (100, -1)])
def test_entradas_invalidas(cantidad, tolerancia):
    with pytest.raises(CantidadInvalida):
        calcular_requerimientos(cantidad, tolerancia, UnidadPedido.UNIDADES, _receta(), [_bopp()], CONFIG)


def test_analizar_stock_ok_y_faltante_con_sustitutos():
    catalogo = [
        _bopp(stock=5.0),
        _bopp(id="m7", nombre="BOPP Transparente 1000", ancho=1000, stock=300.0),
        _pe(),
    ]
    receta = _receta(capa2_id="m4")
    res = calcular_requerimientos(10000, 10, UnidadPedido.UNIDADES, receta, catalogo, CONFIG)
    analisis = analizar_stock(res, receta, catalogo)

    assert list(analisis) == ["capa1", "capa2"]
    assert analisis["capa2"].stock_ok
    capa1 = analisis["capa1"]
    assert not capa1.stock_ok
    assert capa1.faltante_kg == round(res.capa1_kg - 5.0, 2)
    assert [s.material.id for s in capa1.sugerencias] == ["m7"]
    assert not capa1.sin_sustitutos


def test_analizar_stock_sin_sustitutos():
    catalogo = [_bopp(stock=1.0)]
    res = calcular_requerimientos(10000, 10, UnidadPedido.UNIDADES, _receta(), catalogo, CONFIG)
    analisis = analizar_stock(res, _receta(), catalogo)
    assert analisis["capa1"].sin_sustitutos


def test_analizar_stock_material_compartido_entre_capas():
    catalogo = [
        _bopp(stock=30.0),
        _bopp(id="m7", nombre="BOPP Transparente 1000", ancho=1000, stock=300.0),
    ]
    receta = _receta(capa2_id="m1")
    res = calcular_requerimientos(10000, 10, UnidadPedido.UNIDADES, receta, catalogo, CONFIG)
    assert res.capa1_kg == res.capa2_kg

    analisis = analizar_stock(res, receta, catalogo)
    assert analisis["capa1"].stock_ok
    capa2 = analisis["capa2"]
    assert not capa2.stock_ok
    # la capa 2 solo cuenta con lo que deja libre la capa 1
    assert capa2.faltante_kg == pytest.approx(2 * res.capa1_kg - 30.0, abs=0.01)
    assert [s.material.id for s in capa2.sugerencias] == ["m7"]

    plan = planificar_consumo(res, receta, catalogo)
    assert plan.requiere_confirmacion
    assert plan.avisos[0].startswith("Capa 2")
