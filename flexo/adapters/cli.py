# flexo/adapters/cli.py
"""
CLI del planificador de producción flexográfica (Typer).

Comandos principales:
- migrate                      -> aplica migraciones
- seed                         -> carga catálogo, receta y parámetros de ejemplo
- params set/show              -> gestiona la merma global
- materiales listar/importar   -> catálogo de materias primas
- recetas listar/importar      -> fichas técnicas
- calcular <receta> <cantidad> -> requerimientos + análisis de stock y sustitutos
- confirmar <receta> <cant.>   -> descuenta stock y crea la orden de producción
- ordenes listar/ver/estado    -> órdenes registradas
"""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from flexo.config import DB_PATH, DEFAULTS
from flexo.adapters.catalog_loader import load_materiales, load_recetas
from flexo.adapters.parsers import parse_cantidad_raw, parse_sustitutos, parse_unidad
from flexo.domain.errors import ConfirmacionRequerida, ErrorDominio
from flexo.domain.models import EstadoOrden, OrdenProduccion, Receta, UnidadPedido
from flexo.infra.migrations import apply_migrations
from flexo.infra.repositories import (
    MaterialRepo,
    OrdenRepo,
    ParamsRepo,
    RecetaRepo,
    cargar_config,
)
from flexo.infra.seed import run_seed
from flexo.usecases.calcular_produccion import analizar_stock, calcular_requerimientos
from flexo.usecases.confirmar_orden import confirmar_orden


app = typer.Typer(help="Planificador de producción flexográfica - CLI")
console = Console()


# -----------------------
# util
# -----------------------

def _print_json(obj) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


def _fmt(val: Any) -> str:
    if isinstance(val, bool) or val is None:
        return "" if val is None else str(val)
    if isinstance(val, int):
        return f"{val:,}".replace(",", ".")
    if isinstance(val, float):
        return f"{val:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return str(getattr(val, "value", val))


def _display_table(data: List[Dict[str, Any]], title: str = "Resultado") -> None:
    """Muestra una lista de dicts como tabla Rich."""
    if not data:
        console.print(Panel("No hay datos", title=title, border_style="yellow"))
        return
    table = Table(title=title, box=box.ROUNDED)
    columns = list(data[0].keys())
    for column in columns:
        numeric = isinstance(data[0].get(column), (int, float)) and not isinstance(data[0].get(column), bool)
        table.add_column(column, justify="right" if numeric else "left")
    for row in data:
        table.add_row(*[_fmt(row.get(col)) for col in columns])
    console.print(table)


def _fail(msg: str, code: int = 1) -> None:
    console.print(f"[bold red]Error:[/] {msg}")
    raise typer.Exit(code=code)


def _receta_o_falla(db_path: str, receta_id: str) -> Receta:
    receta = RecetaRepo(db_path).get(receta_id)
    if receta is None:
        _fail(f"Receta no encontrada: {receta_id}")
    return receta


def _cantidad_y_unidad(cantidad: str, unidad: Optional[str]):
    num, unidad_txt = parse_cantidad_raw(cantidad)
    if num is None:
        _fail(f"Cantidad inválida: {cantidad!r}")
    und = parse_unidad(unidad) if unidad else None
    if unidad and und is None:
        _fail(f"Unidad inválida: {unidad!r}")
    return num, und or unidad_txt or UnidadPedido.UNIDADES


def _orden_resumen(o: OrdenProduccion) -> Dict[str, Any]:
    return {
        "codigo": o.codigo,
        "fecha": o.fecha,
        "producto": o.nombre_producto,
        "cantidad": o.cantidad,
        "unidad": o.unidad.value,
        "metros_brutos": o.resultado.metros_brutos,
        "total_kg": o.resultado.total_kg,
        "estado": o.estado.value,
    }


def _lineas_dict(o: OrdenProduccion) -> List[Dict[str, Any]]:
    return [
        {
            "capa": ln.capa,
            "material": ln.nombre_material,
            "codigo": ln.codigo_interno or ln.material_id,
            "ancho": ln.ancho,
            "kg": ln.kg,
            "sustituto": "SI" if ln.es_sustituto else "",
        }
        for ln in o.materiales
    ]


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = typer.Option(DB_PATH, "--db", help="Ruta del SQLite")):
    """Aplica las migraciones de esquema."""
    apply_migrations(db_path)
    typer.echo(f">> Migraciones aplicadas en: {db_path}")


@app.command("seed")
def cmd_seed(db_path: str = typer.Option(DB_PATH, "--db", help="Ruta del SQLite")):
    """Carga materiales, receta y parámetros de ejemplo."""
    res = run_seed(db_path)
    typer.echo(f">> Datos iniciales cargados: {res['materiales']} materiales, {res['recetas']} recetas.")


params_app = typer.Typer(help="Parámetros globales de merma.")
app.add_typer(params_app, name="params")


@params_app.command("set")
def cmd_params_set(
    metros_arranque: Optional[float] = typer.Option(None, help="Metros fijos de arranque (ej.: 500)"),
    merma_variable: Optional[float] = typer.Option(None, help="Merma variable como fracción (ej.: 0.05)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Ruta del SQLite"),
):
    """Define parámetros globales (solo se cambian los informados)."""
    apply_migrations(db_path)
    items: List[tuple] = []
    if metros_arranque is not None:
        items.append(("fixed_startup_meters", str(metros_arranque)))
    if merma_variable is not None:
        items.append(("variable_scrap_percent", str(merma_variable)))
    if not items:
        typer.echo("Nada que cambiar. Informe al menos un parámetro.")
        raise typer.Exit(code=1)
    ParamsRepo(db_path).set_many(items)
    typer.echo(">> Parámetros actualizados.")


@params_app.command("show")
def cmd_params_show(
    as_json: bool = typer.Option(False, "--json", help="Salida JSON"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Ruta del SQLite"),
):
    """Muestra los parámetros efectivos (con fallback a los valores por defecto)."""
    apply_migrations(db_path)
    cfg = cargar_config(ParamsRepo(db_path))
    out = {
        "fixed_startup_meters": cfg.metros_arranque,
        "variable_scrap_percent": cfg.merma_variable,
        "_defaults": asdict(DEFAULTS),
        "_db": db_path,
    }
    if as_json:
        _print_json(out)
        return
    table = Table(title="Parámetros del Sistema")
    table.add_column("Parámetro")
    table.add_column("Valor Actual", justify="right")
    table.add_column("Valor por Defecto", justify="right")
    for p in ("fixed_startup_meters", "variable_scrap_percent"):
        table.add_row(p, str(out[p]), str(out["_defaults"][p]))
    console.print(table)
    console.print(f"[dim]Base de datos: {db_path}[/dim]")


# -----------------------
# catálogo
# -----------------------

mat_app = typer.Typer(help="Catálogo de materias primas.")
app.add_typer(mat_app, name="materiales")


@mat_app.command("listar")
def cmd_materiales_listar(
    as_json: bool = typer.Option(False, "--json", help="Salida JSON"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Ruta del SQLite"),
):
    """Lista los materiales con su stock."""
    apply_migrations(db_path)
    rows = [asdict(m) for m in MaterialRepo(db_path).get_all()]
    if as_json:
        _print_json(rows)
    else:
        _display_table(rows, title="Materiales")


@mat_app.command("importar")
def cmd_materiales_importar(
    path: str = typer.Argument(..., help="Planilla XLSX o CSV de materiales"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Ruta del SQLite"),
):
    """Importa (o actualiza) materiales desde una planilla."""
    apply_migrations(db_path)
    materiales = load_materiales(path)
    MaterialRepo(db_path).upsert(materiales)
    typer.echo(f">> {len(materiales)} materiales importados desde {path}")


rec_app = typer.Typer(help="Recetas (fichas técnicas).")
app.add_typer(rec_app, name="recetas")


@rec_app.command("listar")
def cmd_recetas_listar(db_path: str = typer.Option(DB_PATH, "--db", help="Ruta del SQLite")):
    """Lista las recetas registradas."""
    apply_migrations(db_path)
    rows = [
        {
            "id": r.id,
            "sku": r.sku,
            "nombre": r.nombre,
            "formato": r.formato.value,
            "ancho": r.ancho_bobina,
            "paso": r.paso,
            "pistas": r.pistas,
            "capas": " / ".join(c for c in (r.capa1_id, r.capa2_id, r.capa3_id) if c),
        }
        for r in RecetaRepo(db_path).get_all()
    ]
    _display_table(rows, title="Recetas")


@rec_app.command("importar")
def cmd_recetas_importar(
    path: str = typer.Argument(..., help="Planilla XLSX o CSV de recetas"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Ruta del SQLite"),
):
    """Importa (o actualiza) recetas desde una planilla."""
    apply_migrations(db_path)
    recetas = load_recetas(path)
    catalogo = {m.id for m in MaterialRepo(db_path).get_all()}
    for r in recetas:
        faltantes = [c for c in (r.capa1_id, r.capa2_id, r.capa3_id) if c and c not in catalogo]
        if faltantes:
            console.print(f"[yellow]Aviso:[/] receta {r.id} usa materiales fuera del catálogo: {', '.join(faltantes)}")
    RecetaRepo(db_path).upsert(recetas)
    typer.echo(f">> {len(recetas)} recetas importadas desde {path}")


# -----------------------
# cálculo y órdenes
# -----------------------

@app.command("calcular")
def cmd_calcular(
    receta_id: str = typer.Argument(..., help="Id o SKU de la receta"),
    cantidad: str = typer.Argument(..., help="Ej.: 10000, '10.000 un', '500 kg', '5000 m'"),
    unidad: Optional[str] = typer.Option(None, "--unidad", "-u", help="unidades | kilos | metros"),
    tolerancia: float = typer.Option(10.0, "--tolerancia", "-t", help="Tolerancia en %"),
    as_json: bool = typer.Option(False, "--json", help="Salida JSON"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Ruta del SQLite"),
):
    """Calcula metros y kilos requeridos y analiza el stock por capa."""
    apply_migrations(db_path)
    receta = _receta_o_falla(db_path, receta_id)
    num, und = _cantidad_y_unidad(cantidad, unidad)
    catalogo = MaterialRepo(db_path).get_all()
    config = cargar_config(ParamsRepo(db_path))
    try:
        res = calcular_requerimientos(num, tolerancia, und, receta, catalogo, config)
    except ErrorDominio as e:
        _fail(str(e))
    analisis = analizar_stock(res, receta, catalogo)

    if as_json:
        _print_json({
            "resultado": asdict(res),
            "analisis": {
                clave: {
                    "material_id": a.material.id,
                    "requerido_kg": a.requerido_kg,
                    "stock_ok": a.stock_ok,
                    "faltante_kg": a.faltante_kg,
                    "sugerencias": [
                        {
                            "material_id": s.material.id,
                            "tipo": s.tipo.value,
                            "mensaje": s.mensaje,
                            "impacto_merma": s.impacto_merma,
                        }
                        for s in a.sugerencias
                    ],
                }
                for clave, a in analisis.items()
            },
        })
        return

    _display_table([asdict(res)], title=f"Requerimientos - {receta.nombre or receta.id}")
    for clave, a in analisis.items():
        if a.stock_ok:
            console.print(f"[green]{clave}[/]: {a.material.nombre} - Stock OK ({_fmt(a.material.stock_kg)} kg)")
            continue
        console.print(f"[bold red]{clave}[/]: {a.material.nombre} - Stock insuficiente: faltan {_fmt(a.faltante_kg)} kg")
        if a.sin_sustitutos:
            console.print("  [yellow]No hay sustitutos compatibles en inventario.[/]")
            continue
        _display_table(
            [
                {
                    "id": s.material.id,
                    "material": s.material.nombre,
                    "ancho": s.material.ancho,
                    "stock_kg": s.material.stock_kg,
                    "tipo": s.tipo.value,
                    "desperdicio_%": round(s.impacto_merma * 100, 2),
                    "detalle": s.mensaje,
                }
                for s in a.sugerencias
            ],
            title=f"Sustitutos para {clave}",
        )


@app.command("confirmar")
def cmd_confirmar(
    receta_id: str = typer.Argument(..., help="Id o SKU de la receta"),
    cantidad: str = typer.Argument(..., help="Ej.: 10000, '10.000 un', '500 kg'"),
    unidad: Optional[str] = typer.Option(None, "--unidad", "-u", help="unidades | kilos | metros"),
    tolerancia: float = typer.Option(10.0, "--tolerancia", "-t", help="Tolerancia en %"),
    sustituto: Optional[List[str]] = typer.Option(None, "--sustituto", "-s", help="capa=id_material (repetible)"),
    forzar: bool = typer.Option(False, "--forzar", help="Acepta dejar stock en negativo"),
    cliente: Optional[str] = typer.Option(None, "--cliente", help="Nombre del cliente"),
    notas: Optional[str] = typer.Option(None, "--notas", help="Notas para planta"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Ruta del SQLite"),
):
    """Confirma la orden: descuenta stock y registra la orden de producción."""
    apply_migrations(db_path)
    receta = _receta_o_falla(db_path, receta_id)
    num, und = _cantidad_y_unidad(cantidad, unidad)
    try:
        sustitutos = parse_sustitutos(sustituto)
    except ValueError as e:
        _fail(str(e))

    def _run(forzar_: bool) -> OrdenProduccion:
        return confirmar_orden(
            receta, num, und, tolerancia,
            MaterialRepo(db_path), OrdenRepo(db_path), cargar_config(ParamsRepo(db_path)),
            sustitutos=sustitutos, forzar=forzar_, cliente_nombre=cliente, notas=notas,
        )

    try:
        try:
            orden = _run(forzar)
        except ConfirmacionRequerida as e:
            console.print(Panel("\n".join(e.avisos), title="ADVERTENCIA: el inventario quedará en NEGATIVO", border_style="red"))
            if not typer.confirm("¿Desea proceder?", default=False):
                typer.echo("Orden cancelada.")
                raise typer.Exit(code=1)
            orden = _run(True)
    except ErrorDominio as e:
        _fail(str(e))

    console.print(Panel(
        f"Orden [bold]{orden.codigo}[/] creada\nEtapas: {' → '.join(orden.etapas)}",
        title="Orden de Producción",
        border_style="green",
    ))
    _display_table(_lineas_dict(orden), title=f"Materiales {orden.codigo}")


ord_app = typer.Typer(help="Órdenes de producción.")
app.add_typer(ord_app, name="ordenes")


@ord_app.command("listar")
def cmd_ordenes_listar(
    as_json: bool = typer.Option(False, "--json", help="Salida JSON"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Ruta del SQLite"),
):
    """Lista las órdenes registradas."""
    apply_migrations(db_path)
    rows = [_orden_resumen(o) for o in OrdenRepo(db_path).get_all()]
    if as_json:
        _print_json(rows)
    else:
        _display_table(rows, title="Órdenes de Producción")


@ord_app.command("ver")
def cmd_ordenes_ver(
    codigo: str = typer.Argument(..., help="Ej.: OP-1001"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Ruta del SQLite"),
):
    """Muestra el detalle de una orden."""
    apply_migrations(db_path)
    orden = OrdenRepo(db_path).get(codigo)
    if orden is None:
        _fail(f"Orden no encontrada: {codigo}")
    _display_table([_orden_resumen(orden)], title=f"Orden {orden.codigo}")
    _display_table(_lineas_dict(orden), title="Materiales")
    console.print(f"Etapas: {' → '.join(orden.etapas)}")


@ord_app.command("estado")
def cmd_ordenes_estado(
    codigo: str = typer.Argument(..., help="Ej.: OP-1001"),
    estado: str = typer.Argument(..., help="Pendiente | 'En Producción' | Terminado"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Ruta del SQLite"),
):
    """Cambia el estado de una orden."""
    apply_migrations(db_path)
    try:
        nuevo = EstadoOrden(estado)
    except ValueError:
        _fail(f"Estado inválido: {estado!r}")
    repo = OrdenRepo(db_path)
    if repo.get(codigo) is None:
        _fail(f"Orden no encontrada: {codigo}")
    repo.actualizar_estado(codigo, nuevo)
    typer.echo(f">> {codigo}: {nuevo.value}")


# Entry point
def main():
    app()


if __name__ == "__main__":
    main()
