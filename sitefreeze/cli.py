# === FILE: sitefreeze/cli.py ===
#!/usr/bin/env python3
"""
Command line entry point for SiteFreeze.

Commands:
  crawl     Crawl a WSGI application and save every page as a static file
  config    Show the effective configuration

Global options:
  --config PATH       YAML/JSON config file
  --log-level LEVEL   Logging level (DEBUG, INFO, ...)
  --log-file PATH     Log file (stderr only when not given)
  --log-format FORMAT Logging format string

Example:
  sitefreeze crawl --application myapp.wsgi:app --destination _site
  sitefreeze crawl -a myapp.wsgi:app -d _site --files urls.txt
"""
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from sitefreeze import __version__
from sitefreeze.config import CrawlConfig, load_config
from sitefreeze.engine import Engine
from sitefreeze.errors import SiteFreezeError
from sitefreeze.logger import DEFAULT_FORMAT, init_logging
from sitefreeze.report.html_report import render_html
from sitefreeze.report.json_report import render_json

CONTEXT_SETTINGS = dict(help_option_names=["--help", "-h"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def override(cfg: CrawlConfig, **options) -> CrawlConfig:
    """Return *cfg* with every option that was actually given applied."""
    updates = {k: v for k, v in options.items() if v is not None}
    return CrawlConfig(**{**cfg.model_dump(), **updates})


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-V', message='sitefreeze version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Path to a YAML or JSON configuration file.'
)
@click.option(
    '--log-level', 'log_level',
    default='WARNING', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Logging level'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Log file (stderr when not given)'
)
@click.option(
    '--log-format', 'log_format',
    default=DEFAULT_FORMAT,
    show_default=True,
    help='Logging format string'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """SiteFreeze: turn a WSGI application into a static site."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except (OSError, ValueError, TypeError, ValidationError) as e:
        print_error(f'Cannot load configuration: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.argument('args', nargs=-1)
@click.option('--application', '-a', default=None, help='WSGI application to crawl (module:attr).')
@click.option(
    '--destination', '--directory', '-d', 'destination',
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help='Output directory (a temporary directory when not given).'
)
@click.option('--index', '-i', default=None, help='File name for directory URLs [default: index.html].')
@click.option('--url', '-u', default=None, help='Base URL the application is mounted at [default: http://localhost/].')
@click.option('--host', 'hosts', multiple=True, help='Allowed host pattern, * is a wildcard (repeatable).')
@click.option('--follow/--no-follow', default=None, help='Follow links in saved pages [default: follow].')
@click.option('--files', '-F', 'files', is_flag=True, help='Treat ARGS as files listing URLs (- is stdin).')
@click.option('--parallel', '-p', type=click.IntRange(min=0), default=None, help='Number of worker processes.')
@click.option('--quiet', '-q', is_flag=True, help='Same as --no-verbose --no-errors.')
@click.option('--verbose/--no-verbose', default=None, help='List saved pages.')
@click.option('--errors/--no-errors', default=None, help='List pages that were not saved.')
@click.option('--environment', '-e', default=None, help='Value of SITEFREEZE_ENV for the application.')
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Save a JSON report to this file'
)
@click.option(
    '--html', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Save an HTML report to this file'
)
@click.option(
    '--template', '-t', 'template_dir',
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Directory holding report.html.j2 (the bundled template otherwise)'
)
@click.pass_context
def crawl(ctx, args, application, destination, index, url, hosts, follow, files, parallel,
          quiet, verbose, errors, environment, json_output, html_output, template_dir):
    """Crawl ARGS (URLs, default /) and save the responses as files."""
    cfg = ctx.obj['config']
    try:
        cfg = override(
            cfg,
            application=application,
            destination=destination,
            index=index,
            url=url,
            hosts=[*cfg.hosts, *hosts] if hosts else None,
            follow=follow,
            parallel=parallel,
            quiet=quiet or None,
            verbose=verbose,
            errors=errors,
            environment=environment,
        )
    except ValidationError as e:
        print_error(f'Invalid option: {e}')

    if not cfg.application:
        print_error('Missing required option: application')

    try:
        report = Engine(cfg).start_crawl(args, files=files)
    except SiteFreezeError as e:
        print_error(f'Crawl failed: {e}')
    except FileNotFoundError as e:
        print_error(str(e))

    if json_output:
        try:
            saved_json = render_json(report, json_output)
            click.echo(f'JSON report: {saved_json}', err=True)
        except OSError as e:
            print_error(f'Cannot save JSON report: {e}')

    if html_output:
        try:
            saved_html = render_html(report, template_dir, html_output)
            click.echo(f'HTML report: {saved_html}', err=True)
        except OSError as e:
            print_error(f'Cannot save HTML report: {e}')


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Show the current configuration as JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
