"""
Políticas de cálculo y utilidades del planificador.

Este módulo reúne las reglas de negocio que no dependen del catálogo
completo: redondeos, merma efectiva, compatibilidad y clasificación de
materiales sustitutos, etapas de producción y numeración de órdenes.
Son usadas por los casos de uso de cálculo, búsqueda de sustitutos y
confirmación de órdenes.
"""

from __future__ import annotations

from math import ceil, floor
from typing import Callable, List, Optional, Tuple

from flexo.domain.models import (
    ConfigSistema,
    Formato,
    Material,
    Receta,
    Sugerencia,
    TipoSugerencia,
)


# (clave, atributo en Receta, atributo en ResultadoCalculo, etiqueta)
CAPAS: Tuple[Tuple[str, str, str, str], ...] = (
    ("capa1", "capa1_id", "capa1_kg", "Capa 1 (Imp)"),
    ("capa2", "capa2_id", "capa2_kg", "Capa 2 (Lam)"),
    ("capa3", "capa3_id", "capa3_kg", "Capa 3 (Sell)"),
)

# Acabados que el sustituto debe compartir con el original
PALABRAS_ACABADO: Tuple[str, ...] = ("mate", "blanco", "metal", "perl", "trans")

PredicadoCompatibilidad = Callable[[Material, Material], bool]


def redondear_metros(x: float) -> int:
    """Metros lineales siempre hacia arriba (nunca se informa de menos)."""
    return int(ceil(x))


def redondear_kg(x: float) -> float:
    return round(float(x), 2)


def pistas_efectivas(pistas: Optional[int]) -> int:
    """Número de pistas; cero, negativo o ``None`` cuentan como 1."""
    try:
        p = int(pistas) if pistas is not None else 0
    except (TypeError, ValueError):
        p = 0
    return p if p > 0 else 1


def merma_efectiva(receta: Receta, config: ConfigSistema) -> float:
    """Merma variable de la receta si existe; si no, la global."""
    if receta.merma_especifica is not None:
        return float(receta.merma_especifica)
    return float(config.merma_variable)


def es_compatible_por_nombre(original: Material, candidato: Material) -> bool:
    """Heurística de acabado por palabras clave en el nombre.

    Para cada palabra de :data:`PALABRAS_ACABADO` presente en el nombre del
    original, el nombre del candidato también debe contenerla (sin
    distinguir mayúsculas).
    """
    nombre_original = (original.nombre or "").lower()
    nombre_candidato = (candidato.nombre or "").lower()
    return all(
        palabra in nombre_candidato
        for palabra in PALABRAS_ACABADO
        if palabra in nombre_original
    )


def _mm(x: float) -> str:
    return f"{float(x):g}"


def clasificar_sustituto(candidato: Material, ancho_requerido: float) -> Optional[Sugerencia]:
    """Clasifica un candidato según su ancho frente al ancho requerido.

    Reglas:
        - ``ancho < requerido`` → ``None`` (nunca más angosto).
        - ``floor(ancho / requerido) >= 2`` → ``SLIT_MULTIPLE`` (refilar en
          varias tiras); desperdicio = sobrante tras las tiras enteras.
        - en otro caso → ``WIDER``; desperdicio = ``(ancho - requerido) / ancho``.

    Returns:
        La sugerencia con ``impacto_merma`` como fracción del ancho del
        candidato, o ``None`` si no sirve.
    """
    ancho = float(candidato.ancho)
    requerido = float(ancho_requerido)
    if requerido <= 0 or ancho < requerido:
        return None

    pistas = int(floor(ancho / requerido))
    if pistas >= 2:
        desperdicio = ancho - pistas * requerido
        return Sugerencia(
            material=candidato,
            tipo=TipoSugerencia.SLIT_MULTIPLE,
            mensaje=f"REFILAR: Bobina de {_mm(ancho)}mm. Salen {pistas} tiras.",
            impacto_merma=desperdicio / ancho,
            pistas_posibles=pistas,
        )

    desperdicio = ancho - requerido
    if desperdicio == 0:
        mensaje = f"ANCHO EXACTO: Bobina alternativa de {_mm(ancho)}mm."
    else:
        mensaje = f"MAYOR ANCHO: {_mm(ancho)}mm (+{_mm(desperdicio)}mm desperdicio)."
    return Sugerencia(
        material=candidato,
        tipo=TipoSugerencia.WIDER,
        mensaje=mensaje,
        impacto_merma=desperdicio / ancho,
    )


def etapas_produccion(receta: Receta) -> List[str]:
    """Secuencia de etapas de planta para la estructura de la receta."""
    etapas = ["Impresión"]
    if receta.capa2_id:
        etapas.append("Laminación")
    if receta.capa3_id:
        etapas.append("Trilaminado")
    etapas.append("Refilado")
    if receta.formato == Formato.BOLSA:
        etapas.append("Confección (Bolsera)")
    return etapas


def codigo_orden(secuencia: int) -> str:
    """Código visible de la orden: ``OP-1001`` para la secuencia 1."""
    return f"OP-{1000 + int(secuencia)}"
