"""
Utilidades de parsing para cantidades de pedido y selección de sustitutos.

Este módulo interpreta el texto que escribe el operador en la línea de
comandos, por ejemplo "10.000 un", "1.250,5 kg" o "capa1=m2", y lo
convierte en valores tipados para los casos de uso.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, Optional, Tuple

from flexo.domain.models import UnidadPedido

_NUM_RE = re.compile(r"[-+]?\d[\d.,]*")
_MILES_RE = re.compile(r"^[-+]?\d{1,3}(\.\d{3})+$")

_UNIDADES = {
    "U": UnidadPedido.UNIDADES,
    "UN": UnidadPedido.UNIDADES,
    "UND": UnidadPedido.UNIDADES,
    "UNID": UnidadPedido.UNIDADES,
    "UNIDADES": UnidadPedido.UNIDADES,
    "K": UnidadPedido.KILOS,
    "KG": UnidadPedido.KILOS,
    "KGS": UnidadPedido.KILOS,
    "KILOS": UnidadPedido.KILOS,
    "M": UnidadPedido.METROS,
    "MT": UnidadPedido.METROS,
    "MTS": UnidadPedido.METROS,
    "METROS": UnidadPedido.METROS,
}

_CAPAS_ALIAS = {
    "1": "capa1", "capa1": "capa1", "layer1": "capa1",
    "2": "capa2", "capa2": "capa2", "layer2": "capa2",
    "3": "capa3", "capa3": "capa3", "layer3": "capa3",
}


def parse_numero(txt: str) -> Optional[float]:
    """Número en formato local o internacional.

    Ejemplos:
        "10.000"   → 10000.0  (punto de miles)
        "1.250,5"  → 1250.5
        "12,5"     → 12.5
        "12.5"     → 12.5
    """
    if txt is None:
        return None
    s = str(txt).strip()
    if not s:
        return None
    if "," in s and "." in s:
        s = s.replace(".", "").replace(",", ".")
    elif "," in s:
        s = s.replace(",", ".")
    elif _MILES_RE.match(s):
        s = s.replace(".", "")
    try:
        return float(s)
    except ValueError:
        return None


def parse_unidad(txt: Optional[str]) -> Optional[UnidadPedido]:
    if txt is None:
        return None
    s = str(txt).strip().upper()
    if not s:
        return None
    if s in _UNIDADES:
        return _UNIDADES[s]
    for u in UnidadPedido:
        if s == u.value.upper() or s == u.name:
            return u
    return None


def parse_cantidad_raw(txt: str) -> Tuple[Optional[float], Optional[UnidadPedido]]:
    """Interpreta "<número> [unidad]".

    Ejemplos:
        "10.000 un"   → (10000.0, UNIDADES)
        "1.250,5 kg"  → (1250.5, KILOS)
        "5000m"       → (5000.0, METROS)
        "300"         → (300.0, None)

    Returns:
        Tupla (cantidad, unidad). Lo que no se pueda determinar vuelve como None.
    """
    if txt is None:
        return None, None
    s = str(txt).strip()
    if not s:
        return None, None
    m = _NUM_RE.search(s)
    if not m:
        return None, parse_unidad(s)
    num = parse_numero(m.group(0).rstrip(".,"))
    resto = s[m.end():].strip()
    return num, parse_unidad(resto)


def parse_sustitutos(items: Optional[Iterable[str]]) -> Dict[str, str]:
    """Convierte ["capa1=m2", "3=m9"] en {"capa1": "m2", "capa3": "m9"}.

    Raises:
        ValueError: si un elemento no tiene la forma ``capa=id`` o la capa
            no es 1, 2 o 3.
    """
    out: Dict[str, str] = {}
    for item in items or []:
        if "=" not in item:
            raise ValueError(f"Sustituto inválido (use capa=id): {item!r}")
        capa, material_id = (p.strip() for p in item.split("=", 1))
        clave = _CAPAS_ALIAS.get(capa.lower())
        if clave is None or not material_id:
            raise ValueError(f"Sustituto inválido (use capa=id): {item!r}")
        out[clave] = material_id
    return out
