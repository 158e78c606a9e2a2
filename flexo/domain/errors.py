# flexo/domain/errors.py
"""
Errores tipados del dominio.

Todos heredan de ``ValueError`` para que el llamador pueda distinguir un
material faltante de un problema aritmético sin depender del mensaje.
"""

from __future__ import annotations

from typing import List, Optional


class ErrorDominio(ValueError):
    """Base de los errores del planificador."""


class MaterialNoEncontrado(ErrorDominio):
    """Un id de material referenciado no existe en el catálogo."""

    def __init__(self, material_id: Optional[str], capa: Optional[str] = None):
        self.material_id = material_id
        self.capa = capa
        if capa:
            msg = f"Material de {capa} no encontrado: {material_id!r}"
        else:
            msg = f"Material no encontrado: {material_id!r}"
        super().__init__(msg)


class CantidadInvalida(ErrorDominio):
    """Cantidad, tolerancia o divisor fuera de rango."""


class ConfirmacionRequerida(ErrorDominio):
    """La orden dejaría stock en negativo y el operador no lo ha aceptado."""

    def __init__(self, avisos: List[str]):
        self.avisos = list(avisos)
        detalle = "; ".join(self.avisos) if self.avisos else "stock insuficiente"
        super().__init__(f"El inventario quedará en NEGATIVO: {detalle}")
