"""
Fórmulas de masa para películas flexográficas.

Estas funciones convierten dimensiones de bobina (ancho, largo, espesor y
densidad) en kilogramos, y gramajes de cobertura (g/m2) de tinta o
adhesivo en kilogramos sobre un área dada.

Todas son puras: dependen solo de sus entradas y no validan signos. Un
valor negativo produce un resultado negativo; evitarlo es responsabilidad
del llamador.
"""

from typing import Iterable, Union

from flexo.domain.models import Material

Numero = Union[int, float]


def peso_bobina(
    ancho_mm: Numero,
    largo_m: Numero,
    espesor_micras: Numero,
    densidad: Numero,
) -> float:
    """Peso en kg de una bobina teórica.

    Fórmula::

        kg = (ancho_mm / 1000) * largo_m * espesor_micras * densidad / 1000

    Parameters
    ----------
    ancho_mm: float
        Ancho de la película en milímetros.
    largo_m: float
        Largo en metros lineales.
    espesor_micras: float
        Espesor en micras.
    densidad: float
        Densidad en g/cm3.
    """
    ancho_m = float(ancho_mm) / 1000.0
    return (ancho_m * float(largo_m) * float(espesor_micras) * float(densidad)) / 1000.0


def peso_material(ancho_mm: Numero, largo_m: Numero, material: Material) -> float:
    """Atajo de :func:`peso_bobina` con espesor y densidad del material."""
    return peso_bobina(ancho_mm, largo_m, material.espesor, material.densidad)


def area_m2(ancho_mm: Numero, largo_m: Numero) -> float:
    """Área en m2 de una banda de ``ancho_mm`` por ``largo_m``."""
    return (float(ancho_mm) / 1000.0) * float(largo_m)


def masa_recubrimiento(area: Numero, gramaje: Numero) -> float:
    """Kilogramos de tinta o adhesivo para un área (m2) y un gramaje (g/m2)."""
    return (float(area) * float(gramaje)) / 1000.0


def masa_por_metro(
    ancho_mm: Numero,
    capas: Iterable[Material],
    cobertura_tinta: Numero,
    cobertura_adhesivo: Numero,
) -> float:
    """Masa (kg) de un metro lineal de la estructura completa.

    Suma el peso de cada capa a 1 m, la tinta sobre el área de ese metro y
    una aplicación de adhesivo por cada interfaz de laminación
    (``n_capas - 1``; cero si la estructura es monocapa).
    """
    capas = list(capas)
    area_metro = area_m2(ancho_mm, 1)
    peso_capas = sum(peso_material(ancho_mm, 1, m) for m in capas)
    tinta = masa_recubrimiento(area_metro, cobertura_tinta)
    interfaces = len(capas) - 1
    adhesivo = interfaces * masa_recubrimiento(area_metro, cobertura_adhesivo) if interfaces > 0 else 0.0
    return peso_capas + tinta + adhesivo
