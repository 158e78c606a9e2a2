# flexo/config.py
"""
Configuración global y valores por defecto del planificador de producción.
"""

import os
from dataclasses import dataclass


# Ruta por defecto de la base SQLite
DB_PATH = os.path.join(os.getcwd(), "flexo.db")


@dataclass
class DefaultConfig:
    """Valores por defecto de los parámetros del sistema."""
    fixed_startup_meters: float = 500.0  # metros fijos de arranque (puesta a punto)
    variable_scrap_percent: float = 0.05  # merma variable como fracción (0.05 = 5%)


# Instancia global de los valores por defecto
DEFAULTS = DefaultConfig()
