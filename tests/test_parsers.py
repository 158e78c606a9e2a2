import pytest

from flexo.adapters.parsers import (
    parse_cantidad_raw,
    parse_numero,
    parse_sustitutos,
    parse_unidad,
)
from flexo.domain.models import UnidadPedido


@pytest.mark.parametrize(
    "txt,esperado",
    [
        ("10.000", 10000.0),
        ("1.250,5", 1250.5),
        ("12,5", 12.5),
        ("12.5", 12.5),
        ("0.91", 0.91),
        ("300", 300.0),
        ("", None),
        ("abc", None),
    ],
)
def test_parse_numero(txt, esperado):
    assert parse_numero(txt) == esperado


def test_parse_unidad_alias():
    assert parse_unidad("kg") == UnidadPedido.KILOS
    assert parse_unidad("Metros") == UnidadPedido.METROS
    assert parse_unidad("UND") == UnidadPedido.UNIDADES
    assert parse_unidad("unidades") == UnidadPedido.UNIDADES
    assert parse_unidad("litros") is None
    assert parse_unidad(None) is None


def test_parse_cantidad_raw():
    assert parse_cantidad_raw("10.000 un") == (10000.0, UnidadPedido.UNIDADES)
    assert parse_cantidad_raw("1.250,5 kg") == (1250.5, UnidadPedido.KILOS)
    assert parse_cantidad_raw("5000m") == (5000.0, UnidadPedido.METROS)
    assert parse_cantidad_raw("300") == (300.0, None)
    assert parse_cantidad_raw("") == (None, None)


def test_parse_sustitutos():
    assert parse_sustitutos(["capa1=m2", "3=m9"]) == {"capa1": "m2", "capa3": "m9"}
    assert parse_sustitutos(None) == {}


@pytest.mark.parametrize("item", ["capa1", "capa4=m2", "capa1=", "=m2"])
def test_parse_sustitutos_invalidos(item):
    with pytest.raises(ValueError):
        parse_sustitutos([item])
