# flexo/infra/migrations.py
"""
Migraciones de esquema usando PRAGMA user_version.

V1: tablas base (parámetros, catálogo, recetas, órdenes, secuencia)
V2: índices de consulta
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    # Parámetros K/V
    """
    CREATE TABLE IF NOT EXISTS params (
        clave TEXT PRIMARY KEY,
        valor TEXT
    );
    """,
    # Catálogo de materias primas
    """
    CREATE TABLE IF NOT EXISTS material (
        id TEXT PRIMARY KEY,
        codigo_interno TEXT,
        nombre TEXT,
        tipo TEXT NOT NULL,
        espesor REAL NOT NULL,       -- micras
        densidad REAL NOT NULL,      -- g/cm3
        ancho REAL NOT NULL,         -- mm
        stock_kg REAL NOT NULL DEFAULT 0,
        proveedor TEXT,
        costo_kg REAL
    );
    """,
    # Recetas (fichas técnicas)
    """
    CREATE TABLE IF NOT EXISTS receta (
        id TEXT PRIMARY KEY,
        sku TEXT,
        nombre TEXT,
        cliente_id TEXT,
        formato TEXT NOT NULL,       -- 'BOBINA' | 'BOLSA'
        ancho_bobina REAL NOT NULL,
        pistas INTEGER NOT NULL DEFAULT 1,
        cilindro REAL,
        paso REAL NOT NULL,
        capa1_id TEXT NOT NULL,
        capa2_id TEXT,
        capa3_id TEXT,
        cobertura_tinta REAL DEFAULT 0,
        cobertura_adhesivo REAL DEFAULT 0,
        merma_especifica REAL,
        sentido_bobinado TEXT,
        ancho_final_bobina REAL,
        ancho_bolsa REAL,
        alto_bolsa REAL,
        fuelle REAL
    );
    """,
    # Órdenes de producción (foto del cálculo en JSON)
    """
    CREATE TABLE IF NOT EXISTS orden_produccion (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        codigo TEXT UNIQUE NOT NULL,
        receta_id TEXT,
        nombre_producto TEXT,
        cliente_id TEXT,
        cliente_nombre TEXT,
        fecha TEXT,
        cantidad REAL,
        unidad TEXT,
        tolerancia REAL,
        resultado_json TEXT NOT NULL,
        detalles_json TEXT NOT NULL,
        etapas_json TEXT NOT NULL,
        estado TEXT NOT NULL,
        notas TEXT
    );
    """,
    # Detalle de materiales por orden (auditoría)
    """
    CREATE TABLE IF NOT EXISTS orden_material (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        orden_id INTEGER NOT NULL,
        capa TEXT,
        material_id TEXT,
        nombre_material TEXT,
        codigo_interno TEXT,
        ancho REAL,
        kg REAL,
        es_sustituto INTEGER NOT NULL DEFAULT 0,
        material_original_id TEXT,
        FOREIGN KEY (orden_id) REFERENCES orden_produccion(id) ON DELETE CASCADE
    );
    """,
    # Contadores monotónicos (numeración de órdenes)
    """
    CREATE TABLE IF NOT EXISTS secuencia (
        nombre TEXT PRIMARY KEY,
        valor INTEGER NOT NULL
    );
    """,
    """
    INSERT OR IGNORE INTO secuencia (nombre, valor) VALUES ('orden', 0);
    """,
]


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    conn.executescript(
        """
        CREATE INDEX IF NOT EXISTS idx_material_tipo    ON material(tipo, espesor);
        CREATE INDEX IF NOT EXISTS idx_orden_fecha      ON orden_produccion(fecha);
        CREATE INDEX IF NOT EXISTS idx_orden_material   ON orden_material(orden_id);
        """
    )


def apply_migrations(db_path: str) -> None:
    """Aplica migraciones incrementales según PRAGMA user_version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2
