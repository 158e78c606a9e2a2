# flexo/usecases/buscar_sustitutos.py
"""
Caso de uso: buscar materiales sustitutos para una capa con faltante.

Filtro estricto de candidatos:
- id distinto del original;
- mismo tipo y mismo espesor;
- stock > 0;
- ancho >= ancho requerido (nunca más angosto que la banda de impresión);
- predicado de compatibilidad (por defecto, acabado por nombre).

Cada candidato se clasifica (refilar en varias tiras o bobina más ancha)
y la lista se ordena por menor desperdicio de ancho. Con faltante no se
elige "mejor opción": el operador debe escoger explícitamente.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from flexo.domain.models import Material, Sugerencia, TipoSugerencia
from flexo.domain.policies import (
    PredicadoCompatibilidad,
    clasificar_sustituto,
    es_compatible_por_nombre,
)


@dataclass
class ResultadoBusqueda:
    mejor_opcion: Optional[Sugerencia] = None
    alternativas: List[Sugerencia] = field(default_factory=list)


def _es_candidato(original: Material, m: Material, ancho_requerido: float) -> bool:
    return (
        m.id != original.id
        and m.tipo == original.tipo
        and m.espesor == original.espesor
        and m.stock_kg > 0
        and m.ancho >= ancho_requerido
    )


def buscar_sustitutos(
    material_id: str,
    ancho_requerido: float,
    kg_requerido: float,
    catalogo: Sequence[Material],
    compatible: PredicadoCompatibilidad = es_compatible_por_nombre,
    stock_disponible: Optional[float] = None,
) -> ResultadoBusqueda:
    """Busca alternativas para ``material_id``.

    Args:
        material_id: Material original de la capa.
        ancho_requerido: Ancho mínimo (mm), normalmente el ancho de impresión.
        kg_requerido: Kilos que necesita la capa.
        catalogo: Materiales disponibles.
        compatible: ``compatible(original, candidato) -> bool``.
        stock_disponible: Kilos del original que quedan libres; por defecto
            su stock completo. Sirve cuando otra capa ya usa el mismo material.

    Returns:
        Si el original alcanza, ``mejor_opcion`` es el propio original
        (EXACT, desperdicio 0) y no hay alternativas. Si falta, la lista
        ordenada de alternativas y ``mejor_opcion=None``. Si el original no
        existe, un resultado vacío.
    """
    original = next((m for m in catalogo if m.id == material_id), None)
    if original is None:
        return ResultadoBusqueda()

    if stock_disponible is None:
        stock_disponible = original.stock_kg
    if stock_disponible >= kg_requerido:
        return ResultadoBusqueda(
            mejor_opcion=Sugerencia(
                material=original,
                tipo=TipoSugerencia.EXACT,
                mensaje="Stock OK",
                impacto_merma=0.0,
            )
        )

    sugerencias: List[Sugerencia] = []
    for cand in catalogo:
        if not _es_candidato(original, cand, ancho_requerido):
            continue
        if not compatible(original, cand):
            continue
        sug = clasificar_sustituto(cand, ancho_requerido)
        if sug is not None:
            sugerencias.append(sug)

    # Orden estable: menor desperdicio primero
    sugerencias.sort(key=lambda s: s.impacto_merma)
    return ResultadoBusqueda(mejor_opcion=None, alternativas=sugerencias)
