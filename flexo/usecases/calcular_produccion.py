# flexo/usecases/calcular_produccion.py
"""
Caso de uso: calcular requerimientos de producción.

Flujo:
1) Normaliza la cantidad pedida (unidades, kilos o metros) a metros
   lineales netos de máquina.
2) Aplica merma (arranque fijo + porcentaje variable) → metros brutos.
3) Aplica tolerancia sobre los metros NETOS → metros máximos.
4) Explosión de materiales sobre los metros BRUTOS: kg por capa, tinta y
   adhesivo (una aplicación por interfaz de laminación).
5) Redondeo: metros hacia arriba, masas a 2 decimales.

Además, ``analizar_stock`` compara los kg requeridos por capa con el stock
del catálogo y, si falta, consulta al buscador de sustitutos.

Observaciones:
- No se lee estado global: catálogo, receta y configuración llegan como
  argumentos.
- Un faltante de stock nunca aborta el cálculo; es información para el
  operador.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from flexo.domain.errors import CantidadInvalida, MaterialNoEncontrado
from flexo.domain.formulas import (
    area_m2,
    masa_por_metro,
    masa_recubrimiento,
    peso_material,
)
from flexo.domain.models import (
    ConfigSistema,
    Material,
    Receta,
    ResultadoCalculo,
    Sugerencia,
    UnidadPedido,
)
from flexo.domain.policies import (
    CAPAS,
    PredicadoCompatibilidad,
    es_compatible_por_nombre,
    merma_efectiva,
    pistas_efectivas,
    redondear_kg,
    redondear_metros,
)
from flexo.usecases.buscar_sustitutos import buscar_sustitutos
from flexo.infra.logger import log_system_event, log_transaction


@dataclass(frozen=True)
class AnalisisCapa:
    """Estado de stock de una capa frente a lo requerido."""
    capa: str
    material: Material
    requerido_kg: float
    stock_ok: bool
    faltante_kg: float = 0.0
    sugerencias: Tuple[Sugerencia, ...] = ()

    @property
    def sin_sustitutos(self) -> bool:
        """Falta stock y no hay ningún material compatible."""
        return not self.stock_ok and not self.sugerencias


def buscar_material(catalogo: Sequence[Material], material_id: Optional[str]) -> Optional[Material]:
    if not material_id:
        return None
    for m in catalogo:
        if m.id == material_id:
            return m
    return None


def _capas_receta(receta: Receta, catalogo: Sequence[Material]) -> Tuple[Optional[Material], ...]:
    return tuple(buscar_material(catalogo, getattr(receta, attr)) for _, attr, _, _ in CAPAS)


def metros_netos(
    cantidad: float,
    unidad: UnidadPedido,
    receta: Receta,
    catalogo: Sequence[Material],
) -> float:
    """Metros lineales netos (sin redondear) para la cantidad pedida."""
    pistas = pistas_efectivas(receta.pistas)
    unidad = UnidadPedido(unidad)

    if unidad == UnidadPedido.METROS:
        # Los metros pedidos son de producto terminado: se reparten entre pistas
        return float(cantidad) / pistas

    if unidad == UnidadPedido.UNIDADES:
        # Misma fórmula para BOBINA y BOLSA: el paso ya codifica la repetición
        return (float(cantidad) * float(receta.paso)) / (pistas * 1000.0)

    # KILOS: cálculo inverso a partir de la masa de un metro de estructura
    m1, m2, m3 = _capas_receta(receta, catalogo)
    if m1 is None:
        raise MaterialNoEncontrado(receta.capa1_id, capa="Capa 1")
    presentes = [m for m in (m1, m2, m3) if m is not None]
    kg_metro = masa_por_metro(
        receta.ancho_bobina, presentes, receta.cobertura_tinta, receta.cobertura_adhesivo
    )
    if kg_metro <= 0:
        raise CantidadInvalida(
            f"Masa por metro no positiva ({kg_metro}); revise ancho, espesor y densidad"
        )
    return float(cantidad) / kg_metro


def calcular_requerimientos(
    cantidad: float,
    tolerancia_pct: float,
    unidad: UnidadPedido,
    receta: Receta,
    catalogo: Sequence[Material],
    config: ConfigSistema,
) -> ResultadoCalculo:
    """Motor de cálculo de producción.

    Args:
        cantidad: Cantidad pedida (> 0) en ``unidad``.
        tolerancia_pct: Tolerancia en porcentaje (10 = 10%), >= 0.
        unidad: Unidades, kilos o metros.
        receta: Ficha técnica del producto.
        catalogo: Materiales disponibles.
        config: Merma de arranque y merma variable global.

    Returns:
        ``ResultadoCalculo`` inmutable con metros redondeados hacia arriba y
        masas a 2 decimales.

    Raises:
        CantidadInvalida: cantidad <= 0, tolerancia negativa o masa por
            metro nula en modo kilos.
        MaterialNoEncontrado: capa 1 ausente en un cálculo por kilos.
    """
    datos = {"receta": receta.id, "cantidad": cantidad, "unidad": str(unidad), "tolerancia": tolerancia_pct}
    try:
        if cantidad is None or float(cantidad) <= 0:
            raise CantidadInvalida(f"La cantidad debe ser mayor que cero: {cantidad!r}")
        if tolerancia_pct is None or float(tolerancia_pct) < 0:
            raise CantidadInvalida(f"La tolerancia no puede ser negativa: {tolerancia_pct!r}")

        # 1) metros netos
        netos = metros_netos(cantidad, unidad, receta, catalogo)

        # 2) merma y metros brutos
        merma = config.metros_arranque + netos * merma_efectiva(receta, config)
        brutos = netos + merma

        # 3) tolerancia sobre lo pedido neto
        maximos = brutos + netos * (float(tolerancia_pct) / 100.0)

        # 4) explosión de materiales sobre metros brutos
        m1, m2, m3 = _capas_receta(receta, catalogo)
        ancho = receta.ancho_bobina
        capa1 = peso_material(ancho, brutos, m1) if m1 else 0.0
        capa2 = peso_material(ancho, brutos, m2) if m2 else 0.0
        capa3 = peso_material(ancho, brutos, m3) if m3 else 0.0

        area = area_m2(ancho, brutos)
        tinta = masa_recubrimiento(area, receta.cobertura_tinta)
        adhesivo = 0.0
        if m2:
            adhesivo += masa_recubrimiento(area, receta.cobertura_adhesivo)
        if m3:
            adhesivo += masa_recubrimiento(area, receta.cobertura_adhesivo)

        # 5) redondeo final (una sola vez, sobre las sumas)
        resultado = ResultadoCalculo(
            metros_netos=redondear_metros(netos),
            metros_brutos=redondear_metros(brutos),
            metros_max_tolerancia=redondear_metros(maximos),
            metros_merma=redondear_metros(merma),
            capa1_kg=redondear_kg(capa1),
            capa2_kg=redondear_kg(capa2),
            capa3_kg=redondear_kg(capa3),
            tinta_kg=redondear_kg(tinta),
            adhesivo_kg=redondear_kg(adhesivo),
            total_kg=redondear_kg(capa1 + capa2 + capa3 + tinta + adhesivo),
        )
    except Exception as e:
        log_transaction("calcular_requerimientos", datos, error=str(e))
        raise

    log_transaction("calcular_requerimientos", datos, result=resultado)
    return resultado


def analizar_stock(
    resultado: ResultadoCalculo,
    receta: Receta,
    catalogo: Sequence[Material],
    compatible: PredicadoCompatibilidad = es_compatible_por_nombre,
) -> Dict[str, AnalisisCapa]:
    """Detecta faltantes por capa y propone sustitutos.

    Solo se analizan las capas cuyo material existe en el catálogo. El
    ancho mínimo de los sustitutos es el ancho de impresión de la receta.

    Returns:
        Diccionario ``clave_capa -> AnalisisCapa`` (``capa1``, ``capa2``,
        ``capa3``), en orden de capa.
    """
    analisis: Dict[str, AnalisisCapa] = {}
    # Disponible por material tras lo que ya usan las capas anteriores
    disponible: Dict[str, float] = {m.id: float(m.stock_kg) for m in catalogo}
    for clave, attr_receta, attr_resultado, _etiqueta in CAPAS:
        material = buscar_material(catalogo, getattr(receta, attr_receta))
        if material is None:
            continue
        requerido = float(getattr(resultado, attr_resultado))
        stock = disponible[material.id]
        disponible[material.id] = stock - requerido
        if stock >= requerido:
            analisis[clave] = AnalisisCapa(
                capa=clave, material=material, requerido_kg=requerido, stock_ok=True
            )
            continue

        busqueda = buscar_sustitutos(
            material.id, receta.ancho_bobina, requerido, catalogo,
            compatible=compatible, stock_disponible=stock,
        )
        faltante = redondear_kg(requerido - stock)
        analisis[clave] = AnalisisCapa(
            capa=clave,
            material=material,
            requerido_kg=requerido,
            stock_ok=False,
            faltante_kg=faltante,
            sugerencias=tuple(busqueda.alternativas),
        )
        if not busqueda.alternativas:
            log_system_event(
                "sin_sustituto_compatible",
                {"capa": clave, "material_id": material.id, "faltante_kg": faltante},
                level="warning",
            )
    return analisis
