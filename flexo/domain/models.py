# flexo/domain/models.py
"""
Modelos (dataclasses) del dominio.

Observación importante:
- Los resultados de cálculo y las líneas de material son inmutables
  (``frozen=True``): una orden guarda la foto del momento en que se creó
  y nunca se recalcula contra el catálogo vivo.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union


class TipoMaterial(str, Enum):
    BOPP = "BOPP"
    BOPP_MATE = "BOPP MATE"
    BOPP_DT = "BOPP DT"
    BOPP_PERLADO = "BOPP PERLADO"
    PET = "PET"
    PET_DT = "PET DT"
    PET_PVDC = "PET PVDC"
    PE = "PE"
    PE_BCO = "PE BCO"
    CPP = "CPP"
    BOPA = "BOPA"
    PAPEL = "PAPEL"
    ALUMINIO = "ALUMINIO"


# Densidades de referencia (g/cm3) por tipo de película
DENSIDADES_MATERIAL: Dict[str, float] = {
    TipoMaterial.BOPP.value: 0.91,
    TipoMaterial.BOPP_MATE.value: 0.91,
    TipoMaterial.BOPP_DT.value: 0.91,
    TipoMaterial.BOPP_PERLADO.value: 0.70,  # cavitado
    TipoMaterial.PET.value: 1.4,
    TipoMaterial.PET_DT.value: 1.4,
    TipoMaterial.PET_PVDC.value: 1.45,
    TipoMaterial.PE.value: 0.92,
    TipoMaterial.PE_BCO.value: 1.00,  # pigmento blanco
    TipoMaterial.CPP.value: 0.90,
    TipoMaterial.BOPA.value: 1.15,
    TipoMaterial.PAPEL.value: 1.0,
    TipoMaterial.ALUMINIO.value: 2.7,
}


class Formato(str, Enum):
    BOBINA = "BOBINA"
    BOLSA = "BOLSA"


class UnidadPedido(str, Enum):
    UNIDADES = "Unidades"
    KILOS = "Kilos"
    METROS = "Metros"


class EstadoOrden(str, Enum):
    PENDIENTE = "Pendiente"
    EN_PRODUCCION = "En Producción"
    TERMINADO = "Terminado"


class TipoSugerencia(str, Enum):
    EXACT = "EXACT"
    WIDER = "WIDER"
    SLIT_MULTIPLE = "SLIT_MULTIPLE"  # refilar


@dataclass
class Material:
    """Bobina de materia prima en inventario."""
    id: str
    tipo: str
    espesor: float                  # micras
    densidad: float                 # g/cm3
    ancho: float                    # mm, ancho real de la bobina en stock
    stock_kg: float = 0.0
    nombre: str = ""
    codigo_interno: Optional[str] = None
    proveedor: Optional[str] = None
    costo_kg: Optional[float] = None


@dataclass
class Receta:
    """Ficha técnica de un producto (estructura y dimensiones)."""
    id: str
    ancho_bobina: float             # mm, ancho de impresión (web)
    paso: float                     # mm, cutoff / paso de bolsa
    capa1_id: str                   # externa (impresión), obligatoria
    pistas: int = 1
    cilindro: float = 0.0           # mm, desarrollo
    formato: Formato = Formato.BOBINA
    capa2_id: Optional[str] = None  # intermedia / barrera
    capa3_id: Optional[str] = None  # interna / sellante
    cobertura_tinta: float = 0.0    # g/m2
    cobertura_adhesivo: float = 0.0 # g/m2
    merma_especifica: Optional[float] = None  # sobrescribe la merma global
    sku: Optional[str] = None
    nombre: str = ""
    cliente_id: Optional[str] = None
    sentido_bobinado: Optional[str] = None
    ancho_final_bobina: Optional[float] = None
    ancho_bolsa: Optional[float] = None
    alto_bolsa: Optional[float] = None
    fuelle: Optional[float] = None


@dataclass
class ConfigSistema:
    """Parámetros de merma del proceso."""
    metros_arranque: float = 500.0
    merma_variable: float = 0.05


@dataclass(frozen=True)
class ResultadoCalculo:
    metros_netos: int
    metros_brutos: int
    metros_max_tolerancia: int
    metros_merma: int
    capa1_kg: float
    capa2_kg: float
    capa3_kg: float
    tinta_kg: float
    adhesivo_kg: float
    total_kg: float


@dataclass(frozen=True)
class Sugerencia:
    """Material alternativo propuesto para cubrir un faltante."""
    material: Material
    tipo: TipoSugerencia
    mensaje: str
    impacto_merma: float            # fracción de ancho desperdiciado
    pistas_posibles: int = 1


# Origen de una línea de material: variante etiquetada
@dataclass(frozen=True)
class Estandar:
    pass


@dataclass(frozen=True)
class Sustituto:
    material_original_id: str


Origen = Union[Estandar, Sustituto]


@dataclass(frozen=True)
class LineaMaterial:
    """Detalle exacto de material para el operario (registro de auditoría)."""
    capa: str
    material_id: str
    nombre_material: str
    codigo_interno: Optional[str]
    ancho: float
    kg: float
    origen: Origen = Estandar()

    @property
    def es_sustituto(self) -> bool:
        return isinstance(self.origen, Sustituto)

    @property
    def material_original_id(self) -> Optional[str]:
        if isinstance(self.origen, Sustituto):
            return self.origen.material_original_id
        return None


@dataclass(frozen=True)
class DescuentoStock:
    material_id: str
    kg: float


@dataclass
class DetallesTecnicos:
    formato: Formato
    ancho_bobina: float
    cilindro: float
    paso: float
    pistas: int
    capas: List[str] = field(default_factory=list)
    sentido_bobinado: Optional[str] = None


@dataclass
class OrdenProduccion:
    codigo: str
    receta_id: str
    nombre_producto: str
    cantidad: float
    unidad: UnidadPedido
    tolerancia: float
    resultado: ResultadoCalculo
    detalles: DetallesTecnicos
    materiales: List[LineaMaterial] = field(default_factory=list)
    etapas: List[str] = field(default_factory=list)
    estado: EstadoOrden = EstadoOrden.PENDIENTE
    fecha: Optional[str] = None
    cliente_id: Optional[str] = None
    cliente_nombre: Optional[str] = None
    notas: Optional[str] = None
    id: Optional[int] = None
