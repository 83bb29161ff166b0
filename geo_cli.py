"""
Command-line interface for the coordinate toolkit.
Provides format conversion and geodesic calculations.
"""

import click
import logging
import sys
from typing import Optional, Tuple

from geo_config import ConfigurationError, get_config
from geo_coordinates import METRES_PER_MINUTE, CoordinateError
from geo_earth import EarthModel
from geo_formats import DMM, DMS, CoordinateFormat, parse_coordinate
from geo_geodesic import bearing as geodesic_bearing
from geo_geodesic import distance as geodesic_distance
from geo_geodesic import path_length as geodesic_path_length
from geo_geodesic import translate as geodesic_translate
from geo_mgrs import MGRS
from geo_structured_logging import setup_logging

logger = logging.getLogger(__name__)

FORMAT_CHOICES = [fmt.value for fmt in CoordinateFormat]
MODEL_CHOICES = [model.value for model in EarthModel]

UNITS = {
    'm': 1.0,
    'km': 1000.0,
    'nm': METRES_PER_MINUTE,
}


def _fail(error: Exception) -> None:
    """Report an error on stderr and exit non-zero."""
    logger.debug(f"Command failed: {error!r}")
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def _parse(text: str, fmt: Optional[str] = None):
    return parse_coordinate(text, fmt).to_canonical()


def _render(coordinate, fmt: str, precision: Optional[int] = None,
            decimals: Optional[int] = None) -> str:
    """Format a canonical coordinate, honouring precision options."""
    target = CoordinateFormat.coerce(fmt)

    if target is CoordinateFormat.MGRS:
        return MGRS.from_canonical(coordinate, precision).format()
    if target is CoordinateFormat.DMM:
        return DMM.from_canonical(coordinate).format(decimals)
    if target is CoordinateFormat.DMS:
        return DMS.from_canonical(coordinate).format(decimals)

    return target.view_class.from_canonical(coordinate).format()


POSITION_EPILOG = "Put -- before positions that start with a minus sign, e.g. -- '-33.8688, 151.2093'."

model_option = click.option('--model', default=None, type=click.Choice(MODEL_CHOICES, case_sensitive=False),
                            help='Earth model (default from config)')


@click.group()
@click.option('--log-level', default=None,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Logging level (default from config)')
@click.option('--json-logs', is_flag=True,
              help='Use JSON format for logs')
@click.option('--config', 'config_path', default=None,
              type=click.Path(exists=True, dir_okay=False),
              help='YAML configuration file')
@click.pass_context
def cli(ctx, log_level: Optional[str], json_logs: bool, config_path: Optional[str]):
    """Coordinate conversion and geodesy CLI."""
    config = get_config()
    if config_path:
        try:
            config.reload(config_path)
        except ConfigurationError as e:
            _fail(e)

    log_config = config.get_section('logging')
    ctx.obj = setup_logging(
        log_level=(log_level or log_config.get('level', 'INFO')).upper(),
        json_format=json_logs or bool(log_config.get('json', False)),
        fmt=log_config.get('format')
    )
    ctx.obj.set_context(command=ctx.invoked_subcommand)


@cli.command(epilog=POSITION_EPILOG)
@click.argument('text')
@click.option('--from', 'source_format', default=None,
              type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
              help='Input format (detected when omitted)')
@click.option('--to', 'target_format', required=True,
              type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
              help='Output format')
@click.option('--precision', default=None, type=click.IntRange(1, 5),
              help='MGRS digits per axis')
@click.option('--decimals', default=None, type=click.IntRange(0, 9),
              help='Decimals of the minutes (DMM) or seconds (DMS)')
@click.pass_obj
def convert(log, text: str, source_format: Optional[str], target_format: str,
            precision: Optional[int], decimals: Optional[int]):
    """Convert TEXT to another coordinate format."""
    try:
        coordinate = _parse(text, source_format)
        result = _render(coordinate, target_format, precision, decimals)
    except CoordinateError as e:
        _fail(e)

    log.debug(f"Converted '{text}' to {target_format}", source=source_format, target=target_format)
    click.echo(result)


@cli.command(epilog=POSITION_EPILOG)
@click.argument('start')
@click.argument('end')
@model_option
@click.option('--unit', default='m', type=click.Choice(list(UNITS)),
              help='Output unit: metres, kilometres or nautical miles')
def distance(start: str, end: str, model: Optional[str], unit: str):
    """Distance between START and END."""
    try:
        metres = geodesic_distance(_parse(start), _parse(end), model)
    except CoordinateError as e:
        _fail(e)

    click.echo(f"{metres / UNITS[unit]:.3f} {unit}")


@cli.command(epilog=POSITION_EPILOG)
@click.argument('start')
@click.argument('end')
@model_option
def bearing(start: str, end: str, model: Optional[str]):
    """Initial bearing in degrees from START to END."""
    try:
        degrees = geodesic_bearing(_parse(start), _parse(end), model)
    except CoordinateError as e:
        _fail(e)

    click.echo(f"{degrees:.6f}")


@cli.command(epilog=POSITION_EPILOG)
@click.argument('origin')
@click.option('--bearing', 'heading', required=True, type=float,
              help='Bearing in degrees')
@click.option('--distance', 'metres', required=True, type=float,
              help='Distance in metres')
@model_option
@click.option('--to', 'target_format', default='DD',
              type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
              help='Output format')
def translate(origin: str, heading: float, metres: float, model: Optional[str], target_format: str):
    """Position reached from ORIGIN along a bearing."""
    try:
        destination = geodesic_translate(_parse(origin), heading, metres, model)
        result = _render(destination, target_format)
    except CoordinateError as e:
        _fail(e)

    click.echo(result)


@cli.command(epilog=POSITION_EPILOG)
@click.argument('points', nargs=-1, required=True)
@model_option
@click.option('--unit', default='m', type=click.Choice(list(UNITS)),
              help='Output unit: metres, kilometres or nautical miles')
def path_length(points: Tuple[str, ...], model: Optional[str], unit: str):
    """Total length of the path through POINTS."""
    try:
        metres = geodesic_path_length([_parse(p) for p in points], model)
    except CoordinateError as e:
        _fail(e)

    click.echo(f"{metres / UNITS[unit]:.3f} {unit}")


@cli.command()
def validate_config():
    """Validate the active configuration."""
    cfg = get_config()

    try:
        cfg.validate()
    except ConfigurationError as e:
        click.echo(f"✗ Configuration invalid: {e}", err=True)
        sys.exit(1)

    click.echo("✓ Configuration valid")

    # Show summary
    click.echo("\nGeodesy:")
    click.echo(f"  Vincenty iterations: {cfg.get('geodesy.vincenty_max_iterations')}")
    click.echo(f"  Vincenty tolerance: {cfg.get('geodesy.vincenty_tolerance')}")
    click.echo(f"  Distance model: {cfg.get('geodesy.distance_model')}")
    click.echo(f"  Translate model: {cfg.get('geodesy.translate_model')}")

    click.echo("\nFormats:")
    click.echo(f"  MGRS precision: {cfg.get('formats.mgrs_precision')}")
    click.echo(f"  DMM minute decimals: {cfg.get('formats.dmm_minute_decimals')}")
    click.echo(f"  DMS second decimals: {cfg.get('formats.dms_second_decimals')}")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
