# flexo/usecases/confirmar_orden.py
"""
UC: Confirmar una ORDEN DE PRODUCCIÓN.
- planificar_consumo(): reparte los kg de cada capa entre el material
  original y el sustituto elegido, sin tocar el stock.
- construir_orden(): arma el registro de la orden con la foto del cálculo.
- confirmar_orden(): calcula, planifica, descuenta stock en el almacén
  inyectado y persiste la orden.

Obs.:
- Con faltante y sustituto elegido: se consume todo lo que haya del
  original y el saldo sale del sustituto (línea marcada como sustituto).
- Con faltante y sin sustituto: se descuenta todo del original y el stock
  queda en negativo; requiere ``forzar=True`` (confirmación del operador).
- Los descuentos no son atómicos entre capas. Un fallo a mitad de camino
  se registra como inconsistencia y se propaga; no hay reintento.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from flexo.domain.errors import ConfirmacionRequerida, MaterialNoEncontrado
from flexo.domain.models import (
    ConfigSistema,
    DescuentoStock,
    DetallesTecnicos,
    Estandar,
    LineaMaterial,
    Material,
    OrdenProduccion,
    Receta,
    ResultadoCalculo,
    Sustituto,
    UnidadPedido,
)
from flexo.domain.policies import (
    CAPAS,
    codigo_orden,
    etapas_produccion,
    pistas_efectivas,
    redondear_kg,
)
from flexo.usecases.calcular_produccion import buscar_material, calcular_requerimientos
from flexo.infra.logger import (
    log_descuento,
    log_orden,
    log_system_event,
    log_transaction,
    print_system,
)

# Una confirmación a la vez dentro del proceso
_CONFIRMACION_LOCK = threading.Lock()


@dataclass(frozen=True)
class PlanConsumo:
    lineas: Tuple[LineaMaterial, ...]
    descuentos: Tuple[DescuentoStock, ...]
    nombres_capas: Tuple[str, ...]
    avisos: Tuple[str, ...] = ()

    @property
    def requiere_confirmacion(self) -> bool:
        """Algún material quedará en negativo si se ejecuta el plan."""
        return bool(self.avisos)


def _linea(etiqueta: str, material: Material, kg: float, origen=Estandar()) -> LineaMaterial:
    return LineaMaterial(
        capa=etiqueta,
        material_id=material.id,
        nombre_material=material.nombre,
        codigo_interno=material.codigo_interno,
        ancho=material.ancho,
        kg=redondear_kg(kg),
        origen=origen,
    )


def planificar_consumo(
    resultado: ResultadoCalculo,
    receta: Receta,
    catalogo: Sequence[Material],
    sustitutos: Optional[Mapping[str, str]] = None,
) -> PlanConsumo:
    """Reparte el consumo de cada capa y lista los descuentos de stock.

    Args:
        resultado: Cálculo de requerimientos de la orden.
        receta: Receta de la orden.
        catalogo: Materiales con su stock actual.
        sustitutos: ``clave_capa -> id`` del sustituto elegido por el
            operador (``{"capa1": "m2"}``).

    Raises:
        MaterialNoEncontrado: un sustituto elegido no existe en el catálogo.
    """
    sustitutos = dict(sustitutos or {})
    # Disponible por material, descontando lo ya asignado a capas anteriores
    disponible: Dict[str, float] = {m.id: float(m.stock_kg) for m in catalogo}

    lineas: List[LineaMaterial] = []
    descuentos: List[DescuentoStock] = []
    nombres: List[str] = []
    avisos: List[str] = []

    for clave, attr_receta, attr_resultado, etiqueta in CAPAS:
        requerido = redondear_kg(getattr(resultado, attr_resultado))
        material = buscar_material(catalogo, getattr(receta, attr_receta))
        if material is None or requerido <= 0:
            continue
        nombres.append(material.nombre)

        sub_id = sustitutos.get(clave)
        sustituto = buscar_material(catalogo, sub_id) if sub_id else None
        if sub_id and sustituto is None:
            raise MaterialNoEncontrado(sub_id, capa=etiqueta)
        if sustituto is not None and sustituto.id == material.id:
            sustituto = None

        stock = disponible[material.id]
        if stock < requerido and sustituto is not None:
            # mismo valor redondeado para el descuento y la línea de auditoría
            usado_original = redondear_kg(max(0.0, stock))
            usado_sustituto = redondear_kg(requerido - usado_original)

            if usado_original > 0:
                descuentos.append(DescuentoStock(material.id, usado_original))
                lineas.append(_linea(etiqueta, material, usado_original))
                disponible[material.id] -= usado_original

            descuentos.append(DescuentoStock(sustituto.id, usado_sustituto))
            lineas.append(
                _linea(
                    f"{etiqueta} (COMPLEMENTO)",
                    sustituto,
                    usado_sustituto,
                    origen=Sustituto(material_original_id=material.id),
                )
            )
            if disponible[sustituto.id] < usado_sustituto:
                avisos.append(
                    f"{etiqueta}: el sustituto {sustituto.nombre or sustituto.id} no cubre "
                    f"{redondear_kg(usado_sustituto)} kg"
                )
            disponible[sustituto.id] -= usado_sustituto
        else:
            if stock < requerido:
                avisos.append(
                    f"{etiqueta}: faltan {redondear_kg(requerido - stock)} kg de "
                    f"{material.nombre or material.id} sin sustituto"
                )
            descuentos.append(DescuentoStock(material.id, requerido))
            lineas.append(_linea(etiqueta, material, requerido))
            disponible[material.id] -= requerido

    return PlanConsumo(
        lineas=tuple(lineas),
        descuentos=tuple(descuentos),
        nombres_capas=tuple(nombres),
        avisos=tuple(avisos),
    )


def construir_orden(
    codigo: str,
    receta: Receta,
    cantidad: float,
    unidad: UnidadPedido,
    tolerancia: float,
    resultado: ResultadoCalculo,
    plan: PlanConsumo,
    cliente_nombre: Optional[str] = None,
    notas: Optional[str] = None,
    fecha: Optional[str] = None,
) -> OrdenProduccion:
    """Arma la orden con la foto del cálculo (no se recalcula después)."""
    detalles = DetallesTecnicos(
        formato=receta.formato,
        ancho_bobina=receta.ancho_bobina,
        cilindro=receta.cilindro,
        paso=receta.paso,
        pistas=pistas_efectivas(receta.pistas),
        capas=list(plan.nombres_capas),
        sentido_bobinado=receta.sentido_bobinado,
    )
    return OrdenProduccion(
        codigo=codigo,
        receta_id=receta.id,
        nombre_producto=receta.nombre,
        cantidad=float(cantidad),
        unidad=UnidadPedido(unidad),
        tolerancia=float(tolerancia),
        resultado=resultado,
        detalles=detalles,
        materiales=list(plan.lineas),
        etapas=etapas_produccion(receta),
        fecha=fecha or date.today().isoformat(),
        cliente_id=receta.cliente_id,
        cliente_nombre=cliente_nombre,
        notas=notas,
    )


def _aplicar_descuentos(material_repo, codigo: str, descuentos: Sequence[DescuentoStock]) -> None:
    aplicados: List[DescuentoStock] = []
    for d in descuentos:
        try:
            saldo = material_repo.descontar(d.material_id, d.kg)
        except Exception as e:
            pendientes = list(descuentos[len(aplicados):])
            log_descuento(
                "inconsistency", d.material_id, d.kg,
                orden=codigo,
                aplicados=[(a.material_id, a.kg) for a in aplicados],
                pendientes=[(p.material_id, p.kg) for p in pendientes],
                error=str(e),
            )
            log_system_event(
                "descuento_parcial",
                {"orden": codigo, "aplicados": len(aplicados), "pendientes": len(pendientes)},
                level="error",
            )
            raise
        aplicados.append(d)
        log_descuento("deduct", d.material_id, d.kg, saldo=saldo, orden=codigo)


def confirmar_orden(
    receta: Receta,
    cantidad: float,
    unidad: UnidadPedido,
    tolerancia: float,
    material_repo,
    orden_repo,
    config: ConfigSistema,
    sustitutos: Optional[Mapping[str, str]] = None,
    forzar: bool = False,
    cliente_nombre: Optional[str] = None,
    notas: Optional[str] = None,
) -> OrdenProduccion:
    """Calcula, descuenta stock y registra la orden.

    ``material_repo`` debe ofrecer ``get_all()`` y ``descontar(id, kg)``;
    ``orden_repo`` debe ofrecer ``siguiente_secuencia()`` e ``insert(orden)``.

    Raises:
        ConfirmacionRequerida: el plan deja stock negativo y ``forzar`` es
            falso. No se descuenta nada.
        ErrorDominio: errores de cálculo o materiales inexistentes.
    """
    datos = {
        "receta": receta.id,
        "cantidad": cantidad,
        "unidad": str(unidad),
        "tolerancia": tolerancia,
        "sustitutos": dict(sustitutos or {}),
        "forzar": forzar,
    }
    log_system_event("confirmar_orden_start", datos)

    with _CONFIRMACION_LOCK:
        try:
            catalogo = material_repo.get_all()
            if not catalogo:
                print_system("Catálogo vacío. Importe los materiales antes de confirmar órdenes.")
            resultado = calcular_requerimientos(cantidad, tolerancia, unidad, receta, catalogo, config)
            plan = planificar_consumo(resultado, receta, catalogo, sustitutos)

            if plan.requiere_confirmacion and not forzar:
                raise ConfirmacionRequerida(list(plan.avisos))
            if plan.requiere_confirmacion:
                log_system_event("stock_negativo_aceptado", {"avisos": list(plan.avisos)}, level="warning")
                print_system(">> Atención: el inventario quedará en NEGATIVO.")

            codigo = codigo_orden(orden_repo.siguiente_secuencia())
            _aplicar_descuentos(material_repo, codigo, plan.descuentos)

            orden = construir_orden(
                codigo, receta, cantidad, unidad, tolerancia, resultado, plan,
                cliente_nombre=cliente_nombre, notas=notas,
            )
            orden.id = orden_repo.insert(orden)
        except Exception as e:
            log_transaction("confirmar_orden", datos, error=str(e))
            log_system_event("confirmar_orden_error", {"error": str(e)}, level="error")
            raise

    log_orden("create", orden.codigo, receta=receta.id, etapas=orden.etapas, lineas=len(orden.materiales))
    log_transaction("confirmar_orden", datos, result={"codigo": orden.codigo, "id": orden.id})
    print_system(f">> Orden {orden.codigo} registrada con éxito.")
    return orden
