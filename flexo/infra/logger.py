# flexo/infra/logger.py
"""
Sistema de logging para el planificador de producción.

Este módulo configura los loggers que registran las operaciones críticas:
cálculos, descuentos de stock, creación de órdenes y accesos a la base.
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional


# Flag global para habilitar/deshabilitar logging
ENABLE_LOGGING = False
# Flag global para habilitar/deshabilitar prints/salida
ENABLE_OUTPUT = False

def print_system(*args, **kwargs):
    """Print controlado por ENABLE_OUTPUT."""
    if ENABLE_OUTPUT:
        print(*args, **kwargs)

# Configuración base de los loggers
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura un logger con archivo de salida propio.

    Args:
        name: Nombre del logger
        log_file: Ruta del archivo de log
        level: Nivel de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Logger configurado
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    # delay=True: el archivo se crea en la primera escritura
    file_handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger

# Directorio base de logs (dentro del paquete)
BASE_DIR = Path(__file__).parent.parent
LOGS_DIR = BASE_DIR / "logs"

LOG_FILES = {
    "transactions": LOGS_DIR / "transactions.log",
    "stock": LOGS_DIR / "stock.log",
    "ordenes": LOGS_DIR / "ordenes.log",
    "database": LOGS_DIR / "database.log",
    "system": LOGS_DIR / "system.log",
}

transaction_logger = setup_logger('flexo.transactions', str(LOG_FILES["transactions"]))
stock_logger = setup_logger('flexo.stock', str(LOG_FILES["stock"]))
orden_logger = setup_logger('flexo.ordenes', str(LOG_FILES["ordenes"]))
database_logger = setup_logger('flexo.database', str(LOG_FILES["database"]))
system_logger = setup_logger('flexo.system', str(LOG_FILES["system"]))


def _enabled() -> bool:
    return ENABLE_LOGGING or ENABLE_OUTPUT


def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra una transacción completa.

    Args:
        operation: Tipo de operación (calculo, confirmar_orden, etc.)
        data: Datos de la transacción
        result: Resultado (opcional)
        error: Mensaje de error (opcional)
    """
    if not _enabled():
        return
    if error:
        transaction_logger.error(f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
    else:
        transaction_logger.info(f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")

def log_descuento(action: str, material_id: str, kg: float, saldo: Optional[float] = None, **kwargs) -> None:
    """
    Log de movimientos de stock de materia prima.

    Args:
        action: Acción (deduct, plan, inconsistency)
        material_id: Id del material
        kg: Kilos descontados
        saldo: Saldo resultante (opcional)
        **kwargs: Datos adicionales
    """
    if not _enabled():
        return
    log_data = {
        "action": action,
        "material_id": material_id,
        "kg": kg,
        "saldo": saldo,
        **kwargs
    }
    if saldo is not None and saldo < 0:
        stock_logger.warning(f"STOCK_{action.upper()}_NEGATIVO: {log_data}")
    else:
        stock_logger.info(f"STOCK_{action.upper()}: {log_data}")

def log_orden(action: str, codigo: str, **kwargs) -> None:
    """Log de órdenes de producción."""
    if not _enabled():
        return
    log_data = {"codigo": codigo, **kwargs}
    orden_logger.info(f"ORDEN_{action.upper()}: {log_data}")

def log_database_operation(table: str, operation: str, affected_rows: int = 0, **kwargs) -> None:
    """
    Log de operaciones en la base de datos.

    Args:
        table: Tabla
        operation: Operación SQL (INSERT, UPDATE, DELETE, SELECT)
        affected_rows: Filas afectadas
        **kwargs: Datos adicionales
    """
    if not _enabled():
        return
    log_data = {
        "table": table,
        "operation": operation,
        "affected_rows": affected_rows,
        **kwargs
    }
    database_logger.info(f"DB_{operation}: {log_data}")

def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    Log de eventos del sistema.

    Args:
        event: Descripción del evento
        details: Detalles adicionales (opcional)
        level: Nivel (info, warning, error)
    """
    if not _enabled():
        return
    log_data = {
        "event": event,
        "details": details or {}
    }
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")

def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """Log de importación de archivos (catálogos)."""
    if not _enabled():
        return
    log_data = {
        "operation": operation,
        "file_path": file_path,
        "rows_processed": rows_processed,
        **kwargs
    }
    system_logger.info(f"FILE_{operation.upper()}: {log_data}")

def get_log_summary(log_type: str = "transactions", lines: int = 100) -> Optional[str]:
    """
    Devuelve las últimas líneas de un log.

    Args:
        log_type: transactions, stock, ordenes, database o system
        lines: Número de líneas

    Returns:
        Contenido del log como string
    """
    if not _enabled():
        return None

    log_file = LOG_FILES.get(log_type)
    if not log_file or not log_file.exists():
        return f"Log {log_type} no encontrado."

    try:
        with open(log_file, 'r', encoding='utf-8') as f:
            all_lines = f.readlines()
            return ''.join(all_lines[-lines:])
    except OSError as e:
        return f"Error al leer log {log_type}: {e}"
