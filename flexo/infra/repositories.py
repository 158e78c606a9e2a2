# flexo/infra/repositories.py
"""
Repositorios (DAO) para acceso y manipulación de datos en SQLite.

Clases:
- ParamsRepo
- MaterialRepo
- RecetaRepo
- OrdenRepo
"""

from __future__ import annotations

import json
from dataclasses import asdict, fields, is_dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .db import connect
from flexo.config import DEFAULTS
from flexo.domain.errors import MaterialNoEncontrado
from flexo.domain.models import (
    ConfigSistema,
    DetallesTecnicos,
    Estandar,
    EstadoOrden,
    Formato,
    LineaMaterial,
    Material,
    OrdenProduccion,
    Receta,
    ResultadoCalculo,
    Sustituto,
    UnidadPedido,
)
from flexo.infra.logger import log_database_operation


# -------------------------
# Helpers
# -------------------------

def _as_dict(row: Any) -> Dict[str, Any]:
    if isinstance(row, dict):
        return dict(row)
    if is_dataclass(row):
        return asdict(row)
    raise TypeError("row must be dict or dataclass")


def _enum_value(v: Any) -> Any:
    return getattr(v, "value", v)


def _pick(cls, d: Dict[str, Any]) -> Dict[str, Any]:
    """Solo las claves que son campos del dataclass ``cls``."""
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in d.items() if k in names}


# -------------------------
# Params
# -------------------------

class ParamsRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def set_many(self, items: Iterable[Tuple[str, str]]) -> None:
        with connect(self.db_path) as c:
            c.executemany(
                """
                INSERT INTO params (clave, valor)
                VALUES (?, ?)
                ON CONFLICT(clave) DO UPDATE SET valor=excluded.valor
                """,
                list(items),
            )

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT valor FROM params WHERE clave = ?", (key,)).fetchone()
            return row[0] if row else default

    def get_float(self, key: str, default: float) -> float:
        v = self.get(key, None)
        if v is None:
            return default
        try:
            return float(v)
        except (TypeError, ValueError):
            return default


def cargar_config(params_repo: ParamsRepo) -> ConfigSistema:
    """Configuración de merma vigente, con fallback a DEFAULTS."""
    return ConfigSistema(
        metros_arranque=params_repo.get_float("fixed_startup_meters", DEFAULTS.fixed_startup_meters),
        merma_variable=params_repo.get_float("variable_scrap_percent", DEFAULTS.variable_scrap_percent),
    )


# -------------------------
# Material
# -------------------------

_MATERIAL_COLS = (
    "id, codigo_interno, nombre, tipo, espesor, densidad, ancho, stock_kg, proveedor, costo_kg"
)


class MaterialRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert(self, rows: Iterable[Any]) -> None:
        rows = [_pick(Material, _as_dict(r)) for r in rows]
        with connect(self.db_path) as c:
            for r in rows:
                payload = {f.name: None for f in fields(Material)}
                payload.update(r)
                payload["tipo"] = _enum_value(payload["tipo"])
                c.execute(
                    """
                    INSERT INTO material
                        (id, codigo_interno, nombre, tipo, espesor, densidad, ancho,
                         stock_kg, proveedor, costo_kg)
                    VALUES
                        (:id, :codigo_interno, :nombre, :tipo, :espesor, :densidad, :ancho,
                         COALESCE(:stock_kg, 0), :proveedor, :costo_kg)
                    ON CONFLICT(id) DO UPDATE SET
                        codigo_interno=excluded.codigo_interno,
                        nombre=excluded.nombre,
                        tipo=excluded.tipo,
                        espesor=excluded.espesor,
                        densidad=excluded.densidad,
                        ancho=excluded.ancho,
                        stock_kg=excluded.stock_kg,
                        proveedor=excluded.proveedor,
                        costo_kg=excluded.costo_kg
                    """,
                    payload,
                )
        log_database_operation("material", "UPSERT", len(rows))

    def get_all(self) -> List[Material]:
        with connect(self.db_path) as c:
            cur = c.execute(f"SELECT {_MATERIAL_COLS} FROM material ORDER BY rowid")
            return [Material(**dict(row)) for row in cur.fetchall()]

    def get(self, material_id: str) -> Optional[Material]:
        with connect(self.db_path) as c:
            row = c.execute(
                f"SELECT {_MATERIAL_COLS} FROM material WHERE id = ?", (material_id,)
            ).fetchone()
            return Material(**dict(row)) if row else None

    def descontar(self, material_id: str, kg: float) -> float:
        """Resta ``kg`` del stock y devuelve el saldo resultante.

        El saldo es con signo: una producción forzada puede dejarlo en
        negativo y así queda registrado.
        """
        with connect(self.db_path) as c:
            cur = c.execute(
                "UPDATE material SET stock_kg = stock_kg - ? WHERE id = ?",
                (float(kg), material_id),
            )
            if cur.rowcount == 0:
                raise MaterialNoEncontrado(material_id)
            saldo = c.execute("SELECT stock_kg FROM material WHERE id = ?", (material_id,)).fetchone()[0]
        log_database_operation("material", "UPDATE", 1, material_id=material_id, kg=kg, saldo=saldo)
        return float(saldo)


# -------------------------
# Receta
# -------------------------

_RECETA_COLS = (
    "id, sku, nombre, cliente_id, formato, ancho_bobina, pistas, cilindro, paso, "
    "capa1_id, capa2_id, capa3_id, cobertura_tinta, cobertura_adhesivo, merma_especifica, "
    "sentido_bobinado, ancho_final_bobina, ancho_bolsa, alto_bolsa, fuelle"
)


def _receta_from_row(row) -> Receta:
    d = dict(row)
    d["formato"] = Formato(d["formato"])
    d["pistas"] = int(d["pistas"]) if d["pistas"] is not None else 1
    d["cilindro"] = d["cilindro"] or 0.0
    d["cobertura_tinta"] = d["cobertura_tinta"] or 0.0
    d["cobertura_adhesivo"] = d["cobertura_adhesivo"] or 0.0
    return Receta(**d)


class RecetaRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert(self, rows: Iterable[Any]) -> None:
        rows = [_pick(Receta, _as_dict(r)) for r in rows]
        with connect(self.db_path) as c:
            for r in rows:
                payload = {f.name: None for f in fields(Receta)}
                payload.update(r)
                payload["formato"] = _enum_value(payload["formato"] or Formato.BOBINA)
                if payload["pistas"] is None:
                    payload["pistas"] = 1
                c.execute(
                    f"""
                    INSERT OR REPLACE INTO receta ({_RECETA_COLS})
                    VALUES
                        (:id, :sku, :nombre, :cliente_id, :formato, :ancho_bobina, :pistas,
                         :cilindro, :paso, :capa1_id, :capa2_id, :capa3_id, :cobertura_tinta,
                         :cobertura_adhesivo, :merma_especifica, :sentido_bobinado,
                         :ancho_final_bobina, :ancho_bolsa, :alto_bolsa, :fuelle)
                    """,
                    payload,
                )
        log_database_operation("receta", "UPSERT", len(rows))

    def get_all(self) -> List[Receta]:
        with connect(self.db_path) as c:
            cur = c.execute(f"SELECT {_RECETA_COLS} FROM receta ORDER BY rowid")
            return [_receta_from_row(row) for row in cur.fetchall()]

    def get(self, receta_id: str) -> Optional[Receta]:
        with connect(self.db_path) as c:
            row = c.execute(
                f"SELECT {_RECETA_COLS} FROM receta WHERE id = ? OR sku = ?", (receta_id, receta_id)
            ).fetchone()
            return _receta_from_row(row) if row else None


# -------------------------
# Órdenes de producción
# -------------------------

def _detalles_to_json(d: DetallesTecnicos) -> str:
    data = asdict(d)
    data["formato"] = _enum_value(d.formato)
    return json.dumps(data, ensure_ascii=False)


def _detalles_from_json(s: str) -> DetallesTecnicos:
    data = json.loads(s)
    data["formato"] = Formato(data["formato"])
    return DetallesTecnicos(**data)


class OrdenRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def siguiente_secuencia(self) -> int:
        """Incrementa y devuelve el contador de órdenes (nunca reutiliza números)."""
        with connect(self.db_path) as c:
            c.execute("INSERT OR IGNORE INTO secuencia (nombre, valor) VALUES ('orden', 0)")
            c.execute("UPDATE secuencia SET valor = valor + 1 WHERE nombre = 'orden'")
            valor = c.execute("SELECT valor FROM secuencia WHERE nombre = 'orden'").fetchone()[0]
        return int(valor)

    def insert(self, orden: OrdenProduccion) -> int:
        with connect(self.db_path) as c:
            cur = c.execute(
                """
                INSERT INTO orden_produccion
                    (codigo, receta_id, nombre_producto, cliente_id, cliente_nombre, fecha,
                     cantidad, unidad, tolerancia, resultado_json, detalles_json,
                     etapas_json, estado, notas)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    orden.codigo,
                    orden.receta_id,
                    orden.nombre_producto,
                    orden.cliente_id,
                    orden.cliente_nombre,
                    orden.fecha,
                    orden.cantidad,
                    _enum_value(orden.unidad),
                    orden.tolerancia,
                    json.dumps(asdict(orden.resultado)),
                    _detalles_to_json(orden.detalles),
                    json.dumps(orden.etapas, ensure_ascii=False),
                    _enum_value(orden.estado),
                    orden.notas,
                ),
            )
            orden_id = cur.lastrowid
            c.executemany(
                """
                INSERT INTO orden_material
                    (orden_id, capa, material_id, nombre_material, codigo_interno,
                     ancho, kg, es_sustituto, material_original_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        orden_id, ln.capa, ln.material_id, ln.nombre_material, ln.codigo_interno,
                        ln.ancho, ln.kg, 1 if ln.es_sustituto else 0, ln.material_original_id,
                    )
                    for ln in orden.materiales
                ],
            )
        log_database_operation("orden_produccion", "INSERT", 1, codigo=orden.codigo)
        return int(orden_id)

    def count(self) -> int:
        with connect(self.db_path) as c:
            return int(c.execute("SELECT COUNT(*) FROM orden_produccion").fetchone()[0])

    def _lineas(self, c, orden_id: int) -> List[LineaMaterial]:
        cur = c.execute(
            """
            SELECT capa, material_id, nombre_material, codigo_interno, ancho, kg,
                   es_sustituto, material_original_id
            FROM orden_material WHERE orden_id = ? ORDER BY id
            """,
            (orden_id,),
        )
        out: List[LineaMaterial] = []
        for r in cur.fetchall():
            origen = Sustituto(r["material_original_id"]) if r["es_sustituto"] else Estandar()
            out.append(
                LineaMaterial(
                    capa=r["capa"],
                    material_id=r["material_id"],
                    nombre_material=r["nombre_material"],
                    codigo_interno=r["codigo_interno"],
                    ancho=r["ancho"],
                    kg=r["kg"],
                    origen=origen,
                )
            )
        return out

    def _from_row(self, c, r) -> OrdenProduccion:
        return OrdenProduccion(
            id=r["id"],
            codigo=r["codigo"],
            receta_id=r["receta_id"],
            nombre_producto=r["nombre_producto"],
            cliente_id=r["cliente_id"],
            cliente_nombre=r["cliente_nombre"],
            fecha=r["fecha"],
            cantidad=r["cantidad"],
            unidad=UnidadPedido(r["unidad"]),
            tolerancia=r["tolerancia"],
            resultado=ResultadoCalculo(**json.loads(r["resultado_json"])),
            detalles=_detalles_from_json(r["detalles_json"]),
            etapas=json.loads(r["etapas_json"]),
            estado=EstadoOrden(r["estado"]),
            notas=r["notas"],
            materiales=self._lineas(c, r["id"]),
        )

    def get_all(self) -> List[OrdenProduccion]:
        with connect(self.db_path) as c:
            rows = c.execute("SELECT * FROM orden_produccion ORDER BY id").fetchall()
            return [self._from_row(c, r) for r in rows]

    def get(self, codigo: str) -> Optional[OrdenProduccion]:
        with connect(self.db_path) as c:
            r = c.execute("SELECT * FROM orden_produccion WHERE codigo = ?", (codigo,)).fetchone()
            return self._from_row(c, r) if r else None

    def actualizar_estado(self, codigo: str, estado: EstadoOrden) -> None:
        with connect(self.db_path) as c:
            cur = c.execute(
                "UPDATE orden_produccion SET estado = ? WHERE codigo = ?",
                (_enum_value(EstadoOrden(estado)), codigo),
            )
        log_database_operation("orden_produccion", "UPDATE", cur.rowcount, codigo=codigo)
