# flexo/adapters/catalog_loader.py
"""
Loaders de materias primas y recetas desde planillas (XLSX o CSV).

Estas funciones:
- leen la planilla con pandas;
- normalizan encabezados (acentos, variaciones, sinónimos);
- devuelven objetos ``Material`` o ``Receta`` listos para ``upsert``.

Observaciones:
- Los números aceptan coma o punto decimal ("0,91" o "0.91").
- Si falta la densidad se usa la de referencia del tipo de película.
- Materiales sin id ni código interno, o sin tipo, se descartan.
- Recetas sin id ni SKU, sin capa 1, o sin ancho o paso, se descartan.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from flexo.adapters.parsers import parse_numero
from flexo.domain.models import DENSIDADES_MATERIAL, Formato, Material, Receta
from flexo.infra.logger import log_file_operation, log_system_event


# ---------------------------
# utilidades de normalización
# ---------------------------

def _slug(s: str) -> str:
    """Normaliza encabezados: minúsculas, sin acentos, sin no-alfanuméricos."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    acentos = dict(zip("áàâãäéèêëíìîïóòôõöúùûüñç", "aaaaaeeeeiiiiooooouuuunc"))
    s = "".join(acentos.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


def _safe_get(row, key) -> Optional[Any]:
    """Lee un valor de la fila tratando NA como None."""
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    s = str(val).strip()
    return s or None


def _to_float(val: Any) -> Optional[float]:
    if val is None:
        return None
    return parse_numero(str(val))


_ALIAS_MATERIALES = {
    "id": "id",
    "id material": "id",

    "codigo": "codigo_interno",
    "cod": "codigo_interno",
    "codigo interno": "codigo_interno",
    "codigo erp": "codigo_interno",

    "nombre": "nombre",
    "material": "nombre",
    "descripcion": "nombre",

    "tipo": "tipo",
    "tipo material": "tipo",

    "espesor": "espesor",
    "espesor micras": "espesor",
    "espesor um": "espesor",
    "micras": "espesor",
    "calibre": "espesor",

    "densidad": "densidad",
    "densidad g cm3": "densidad",

    "ancho": "ancho",
    "ancho mm": "ancho",

    "stock": "stock_kg",
    "stock kg": "stock_kg",
    "existencia": "stock_kg",
    "inventario": "stock_kg",

    "proveedor": "proveedor",

    "costo": "costo_kg",
    "costo kg": "costo_kg",
    "precio": "costo_kg",
    "precio kg": "costo_kg",
}

_ALIAS_RECETAS = {
    "id": "id",
    "id receta": "id",
    "id producto": "id",

    "sku": "sku",
    "codigo": "sku",
    "codigo producto": "sku",

    "nombre": "nombre",
    "producto": "nombre",
    "descripcion": "nombre",

    "cliente": "cliente_id",
    "id cliente": "cliente_id",

    "formato": "formato",
    "presentacion": "formato",

    "ancho": "ancho_bobina",
    "ancho mm": "ancho_bobina",
    "ancho bobina": "ancho_bobina",
    "ancho impresion": "ancho_bobina",

    "paso": "paso",
    "paso mm": "paso",
    "corte": "paso",

    "pistas": "pistas",
    "bandas": "pistas",

    "cilindro": "cilindro",
    "cilindro mm": "cilindro",
    "desarrollo": "cilindro",

    "capa1": "capa1_id",
    "capa 1": "capa1_id",
    "material capa 1": "capa1_id",
    "capa2": "capa2_id",
    "capa 2": "capa2_id",
    "material capa 2": "capa2_id",
    "capa3": "capa3_id",
    "capa 3": "capa3_id",
    "material capa 3": "capa3_id",

    "tinta": "cobertura_tinta",
    "cobertura tinta": "cobertura_tinta",
    "tinta g m2": "cobertura_tinta",
    "adhesivo": "cobertura_adhesivo",
    "cobertura adhesivo": "cobertura_adhesivo",
    "adhesivo g m2": "cobertura_adhesivo",

    "merma": "merma_especifica",
    "merma especifica": "merma_especifica",

    "sentido bobinado": "sentido_bobinado",
    "bobinado": "sentido_bobinado",
    "ancho final": "ancho_final_bobina",
    "ancho final bobina": "ancho_final_bobina",
    "ancho bolsa": "ancho_bolsa",
    "alto bolsa": "alto_bolsa",
    "fuelle": "fuelle",
}


def _normalize_columns(df: pd.DataFrame, aliases: Dict[str, str]) -> pd.DataFrame:
    """Renombra columnas según sinónimos/variaciones."""
    new_cols = {}
    for col in df.columns:
        key = _slug(col)
        new_cols[col] = aliases.get(key, key)  # sin alias, se mantiene el slug
    return df.rename(columns=new_cols)


def _read(path: str) -> pd.DataFrame:
    suffix = Path(path).suffix.lower()
    if suffix in (".csv", ".txt"):
        with open(path, encoding="utf-8-sig") as fh:
            encabezado = fh.readline()
        # planillas exportadas con punto y coma (coma decimal)
        sep = ";" if encabezado.count(";") > encabezado.count(",") else ","
        return pd.read_csv(path, dtype="string", sep=sep, encoding="utf-8-sig")
    return pd.read_excel(path, dtype="string")


# ---------------------------
# loader público
# ---------------------------

def load_materiales(path: str) -> List[Material]:
    """Lee la planilla de materiales y devuelve la lista de ``Material``.

    Columnas reconocidas (con sinónimos): id, código interno, nombre, tipo,
    espesor (micras), densidad (g/cm3), ancho (mm), stock (kg), proveedor,
    costo (por kg).
    """
    df = _normalize_columns(_read(path), _ALIAS_MATERIALES)
    out: List[Material] = []
    descartadas = 0
    for idx, row in df.iterrows():
        codigo = _safe_get(row, "codigo_interno")
        material_id = _safe_get(row, "id") or codigo
        tipo = _safe_get(row, "tipo")
        if not material_id or not tipo:
            descartadas += 1
            log_system_event("material_descartado", {"fila": int(idx) + 2, "motivo": "sin id o tipo"}, level="warning")
            continue
        tipo = tipo.upper()
        densidad = _to_float(_safe_get(row, "densidad"))
        if densidad is None:
            densidad = DENSIDADES_MATERIAL.get(tipo, 0.0)
        out.append(
            Material(
                id=material_id,
                codigo_interno=codigo,
                nombre=_safe_get(row, "nombre") or "",
                tipo=tipo,
                espesor=_to_float(_safe_get(row, "espesor")) or 0.0,
                densidad=densidad,
                ancho=_to_float(_safe_get(row, "ancho")) or 0.0,
                stock_kg=_to_float(_safe_get(row, "stock_kg")) or 0.0,
                proveedor=_safe_get(row, "proveedor"),
                costo_kg=_to_float(_safe_get(row, "costo_kg")),
            )
        )
    log_file_operation("import", path, rows_processed=len(out), descartadas=descartadas)
    return out


def _formato(val: Optional[str]) -> Formato:
    if val and _slug(val).startswith("bols"):
        return Formato.BOLSA
    return Formato.BOBINA


def _merma(val: Optional[str]) -> Optional[float]:
    """Merma específica como fracción; "5" o "5%" se leen como 0.05."""
    if val is None:
        return None
    x = _to_float(val.replace("%", ""))
    if x is None:
        return None
    return x / 100.0 if x > 1 else x


def load_recetas(path: str) -> List[Receta]:
    """Lee la planilla de recetas (fichas técnicas) y devuelve ``Receta``.

    Columnas reconocidas (con sinónimos): id, sku, nombre, cliente, formato
    (bobina/bolsa), ancho de impresión, paso, pistas, cilindro, capa 1..3
    (id de material), cobertura de tinta y adhesivo (g/m2), merma
    específica, sentido de bobinado, ancho final, ancho/alto de bolsa,
    fuelle.
    """
    df = _normalize_columns(_read(path), _ALIAS_RECETAS)
    out: List[Receta] = []
    descartadas = 0
    for idx, row in df.iterrows():
        sku = _safe_get(row, "sku")
        receta_id = _safe_get(row, "id") or sku
        capa1 = _safe_get(row, "capa1_id")
        ancho = _to_float(_safe_get(row, "ancho_bobina"))
        paso = _to_float(_safe_get(row, "paso"))
        if not receta_id or not capa1 or not ancho or not paso:
            descartadas += 1
            log_system_event(
                "receta_descartada",
                {"fila": int(idx) + 2, "motivo": "sin id, capa 1, ancho o paso"},
                level="warning",
            )
            continue
        pistas = _to_float(_safe_get(row, "pistas"))
        out.append(
            Receta(
                id=receta_id,
                sku=sku,
                nombre=_safe_get(row, "nombre") or "",
                cliente_id=_safe_get(row, "cliente_id"),
                formato=_formato(_safe_get(row, "formato")),
                ancho_bobina=ancho,
                paso=paso,
                pistas=int(pistas) if pistas else 1,
                cilindro=_to_float(_safe_get(row, "cilindro")) or 0.0,
                capa1_id=capa1,
                capa2_id=_safe_get(row, "capa2_id"),
                capa3_id=_safe_get(row, "capa3_id"),
                cobertura_tinta=_to_float(_safe_get(row, "cobertura_tinta")) or 0.0,
                cobertura_adhesivo=_to_float(_safe_get(row, "cobertura_adhesivo")) or 0.0,
                merma_especifica=_merma(_safe_get(row, "merma_especifica")),
                sentido_bobinado=_safe_get(row, "sentido_bobinado"),
                ancho_final_bobina=_to_float(_safe_get(row, "ancho_final_bobina")),
                ancho_bolsa=_to_float(_safe_get(row, "ancho_bolsa")),
                alto_bolsa=_to_float(_safe_get(row, "alto_bolsa")),
                fuelle=_to_float(_safe_get(row, "fuelle")),
            )
        )
    log_file_operation("import", path, rows_processed=len(out), descartadas=descartadas)
    return out
