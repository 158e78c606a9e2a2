# flexo/infra/seed.py
"""
Datos iniciales: catálogo de materiales, una receta de ejemplo y los
parámetros de merma por defecto.
"""

from __future__ import annotations

from typing import Dict

from flexo.config import DEFAULTS
from flexo.domain.models import Formato, Material, Receta, TipoMaterial
from flexo.infra.logger import log_system_event
from flexo.infra.migrations import apply_migrations
from flexo.infra.repositories import MaterialRepo, ParamsRepo, RecetaRepo


DEFAULT_MATERIALES = [
    Material(id="m1", codigo_interno="MAT-001", nombre="BOPP Transparente", proveedor="Oben Holding",
             tipo=TipoMaterial.BOPP.value, espesor=20, densidad=0.91, ancho=850, stock_kg=1200, costo_kg=3.50),
    Material(id="m2", codigo_interno="MAT-002", nombre="BOPP Mate", proveedor="Sigmaplast",
             tipo=TipoMaterial.BOPP.value, espesor=20, densidad=0.91, ancho=1000, stock_kg=500, costo_kg=4.20),
    Material(id="m3", codigo_interno="MAT-003", nombre="BOPP Metalizado", proveedor="Oben Holding",
             tipo=TipoMaterial.BOPP.value, espesor=20, densidad=0.91, ancho=850, stock_kg=800, costo_kg=3.80),
    Material(id="m4", codigo_interno="MAT-004", nombre="PEBD Transparente", proveedor="Dow Chemical",
             tipo=TipoMaterial.PE.value, espesor=40, densidad=0.92, ancho=850, stock_kg=2000, costo_kg=2.90),
    Material(id="m5", codigo_interno="MAT-005", nombre="PET Std", proveedor="Jindal Films",
             tipo=TipoMaterial.PET.value, espesor=12, densidad=1.4, ancho=1000, stock_kg=150, costo_kg=3.10),
]

DEFAULT_RECETAS = [
    Receta(
        id="p1",
        sku="LEN-500G",
        nombre="Lentejas 500g Tradicional",
        cliente_id="c1",
        formato=Formato.BOLSA,
        ancho_final_bobina=0,
        ancho_bolsa=200,
        alto_bolsa=300,
        fuelle=0,
        paso=300,
        ancho_bobina=840,
        pistas=4,
        cilindro=600,
        capa1_id="m1",
        capa2_id="m4",
        cobertura_tinta=3.5,
        cobertura_adhesivo=1.8,
        merma_especifica=0.05,
    ),
]


def run_seed(db_path: str) -> Dict[str, int]:
    """Migra la base y carga los datos iniciales (idempotente).

    Solo inserta materiales y recetas que aún no existen: el stock de un
    material ya cargado no se toca.
    """
    apply_migrations(db_path)
    materiales = MaterialRepo(db_path)
    recetas = RecetaRepo(db_path)
    existentes = {m.id for m in materiales.get_all()}
    nuevos_mat = [m for m in DEFAULT_MATERIALES if m.id not in existentes]
    existentes = {r.id for r in recetas.get_all()}
    nuevas_rec = [r for r in DEFAULT_RECETAS if r.id not in existentes]
    materiales.upsert(nuevos_mat)
    recetas.upsert(nuevas_rec)
    params = ParamsRepo(db_path)
    if params.get("fixed_startup_meters") is None:
        params.set_many([
            ("fixed_startup_meters", str(DEFAULTS.fixed_startup_meters)),
            ("variable_scrap_percent", str(DEFAULTS.variable_scrap_percent)),
        ])
    res = {"materiales": len(nuevos_mat), "recetas": len(nuevas_rec)}
    log_system_event("seed", res)
    return res
