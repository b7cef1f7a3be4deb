"""
The luciadmin command line.

The instrument is given with -e or one of the LUCIDAC_ENDPOINT, LUCIDAC_URL or LUCIDAC
environment variables, or in the configuration file. Without an endpoint, the first
instrument found by zeroconf discovery is used.
"""
import json
import logging
from contextlib import contextmanager

import click
import httpx
from configobj import ConfigObjError

import luciadmin
from luciadmin.conduit.serial_conduit import serial_port_info
from luciadmin.config.config import load_config
from luciadmin.connector import ConnectorError, parse_endpoint
from luciadmin.controller import Controller, ControllerError
from luciadmin.discovery import DiscoverySession
from luciadmin.protocol.envelope import EnvelopeError, Request
from luciadmin.settings import SettingsError, apply_patch, flatten, format_value, parse_assignment
from luciadmin.web.server import create_app, serve

logger = logging.getLogger(__name__)

endpoint_envvars = ['LUCIDAC_ENDPOINT', 'LUCIDAC_URL', 'LUCIDAC']

log_format = '%(asctime)s %(levelname)s %(name)s: %(message)s'

# seconds, for probing a GUI served by the instrument itself
gui_probe_timeout = 0.8


def configure_logging(verbose, default_level='WARNING'):
    """ -v selects INFO and -vv DEBUG, otherwise the configured level applies. """
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = getattr(logging, default_level)
    logging.basicConfig(format=log_format)
    logging.getLogger().setLevel(level)
    # protocol warnings end up in the log
    logging.captureWarnings(True)


@contextmanager
def reported_errors():
    """ turns the errors of talking to an instrument into a failed command. """
    try:
        yield
    except (ConnectorError, ControllerError, EnvelopeError, SettingsError) as e:
        raise click.ClickException(str(e)) from e


class Options:
    """ The settings shared by all commands, from the command line and the configuration. """

    def __init__(self, config, endpoint_url=None):
        self.config = config
        self.endpoint_url = endpoint_url or config['endpoint']

    @property
    def connect_timeout(self):
        return self.config['controller']['connect_timeout']

    @property
    def command_timeout(self):
        return self.config['controller']['command_timeout']

    def discovery(self) -> DiscoverySession:
        try:
            return DiscoverySession(self.config['discovery']['service_type'])
        except OSError as e:
            raise click.ClickException("zeroconf discovery could not be started: %s" % e) from e

    def endpoint(self):
        """ the endpoint given, or else the first one discovered. """
        if self.endpoint_url:
            try:
                return parse_endpoint(self.endpoint_url)
            except ConnectorError as e:
                raise click.BadParameter(str(e), param_hint="'-e' / '--endpoint'") from e
        endpoint = self.discovery().find_one(self.config['discovery']['timeout'])
        if endpoint is None:
            raise click.ClickException("no instrument found (tried zeroconf). Provide an endpoint, either with -e "
                                       "or as environment variable LUCIDAC_ENDPOINT")
        return endpoint

    def open_controller(self) -> Controller:
        endpoint = self.endpoint()
        with reported_errors():
            return Controller.open(endpoint, self.connect_timeout)

    def command(self, controller: Controller, type, payload=None):
        """ sends a request and returns the response, which must be successful. """
        with reported_errors():
            response = controller.command(Request(type, payload), self.command_timeout)
        if not response.is_success():
            raise click.ClickException("%s returned code %d: %s" % (type, response.code, response.error))
        return response


pass_options = click.make_pass_decorator(Options)


@click.group(invoke_without_command=True)
@click.option('-e', '--endpoint', envvar=endpoint_envvars, metavar='URL',
              help='The instrument to connect to, e.g. net://1.2.3.4 or serial://dev/ttyACM0')
@click.option('-v', '--verbose', count=True, help='More verbose output, repeat for debug output')
@click.option('--config-dir', type=click.Path(file_okay=False), default=None,
              help='Directory with luciadmin.cfg, the current directory by default')
@click.version_option(luciadmin.__version__, prog_name='luciadmin')
@click.pass_context
def cli(ctx, endpoint, verbose, config_dir):
    """Administration of LUCIDAC instruments.

    Without a command, opens the GUI in the web browser (see start).
    """
    try:
        config = load_config(directory=config_dir)
    except (ConfigObjError, IOError) as e:
        raise click.ClickException(str(e)) from e
    configure_logging(verbose, config['log_level'])
    ctx.obj = Options(config, endpoint)
    if ctx.invoked_subcommand is None:
        ctx.invoke(start)


@cli.command()
@click.option('--all', 'find_all', is_flag=True, help='List all instruments found, not just the first')
@click.option('--timeout', type=float, default=None, help='Seconds to wait for announcements')
@pass_options
def detect(options, find_all, timeout):
    """Detect instruments on the network, print their endpoints and exit."""
    if timeout is None:
        timeout = options.config['discovery']['timeout']
    session = options.discovery()
    if find_all:
        found = session.find_all(timeout)
    else:
        first = session.find_one(timeout)
        found = [first] if first is not None else []
    if not found:
        raise click.ClickException("no instrument found")
    for endpoint in found:
        click.echo(endpoint.to_url())


@cli.command()
def ports():
    """List the serial ports of this machine."""
    for port in serial_port_info():
        click.echo("%s\t%s" % (port.device, port.description))


@cli.command()
@click.argument('type')
@click.option('--payload', default=None, metavar='JSON', help='The message sent with the request')
@pass_options
def query(options, type, payload):
    """Send a request of the given TYPE and print the response message."""
    if payload is not None:
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise click.BadParameter("not JSON: %s" % e, param_hint="'--payload'") from e
    with options.open_controller() as controller:
        response = options.command(controller, type, payload)
    click.echo(json.dumps(response.msg, indent=4))


@cli.command('net-get')
@pass_options
def net_get(options):
    """Print the network settings, one key = value per line."""
    with options.open_controller() as controller:
        response = options.command(controller, 'net_get')
    settings = flatten(response.msg)
    for key in sorted(settings):
        click.echo("%s = %s" % (key, format_value(settings[key])))


@cli.command('net-set')
@click.argument('assignments', nargs=-1, required=True, metavar='KEY=VALUE...')
@click.option('--dry-run', is_flag=True, help='Only print the changed settings')
@pass_options
def net_set(options, assignments, dry_run):
    """Change network settings.

    KEY is either section.name or just name when only one section has a setting of that name.
    The values true and false are sent as booleans.
    """
    patch = {}
    for text in assignments:
        try:
            key, value = parse_assignment(text)
        except SettingsError as e:
            raise click.BadParameter(str(e), param_hint='KEY=VALUE') from e
        patch[key] = value
    with options.open_controller() as controller:
        current = options.command(controller, 'net_get').msg
        with reported_errors():
            changed = apply_patch(current, patch)
        click.echo(json.dumps(changed, indent=4))
        if dry_run:
            return
        options.command(controller, 'net_set', changed)
    click.echo("settings sent")


def run_webserver(options, controller, host, port, static_path, open_browser):
    webserver = options.config['webserver']
    app = create_app(controller, static_path, webserver['allow_origins'])
    if open_browser:
        click.launch("http://%s:%s/" % (host, port))
    serve(app, host, port)


@cli.command()
@click.option('--host', default=None, help='Address to listen on')
@click.option('--port', type=int, default=None, help='Port to listen on')
@click.option('--static', 'static_path', type=click.Path(), default=None,
              help='Directory with the GUI assets, served at /local')
@click.option('--open-browser', is_flag=True, help='Open the GUI in the web browser')
@pass_options
def webserver(options, host, port, static_path, open_browser):
    """Run the proxy web server for the instrument."""
    config = options.config['webserver']
    with options.open_controller() as controller:
        run_webserver(options, controller, host or config['host'], port or config['port'],
                      static_path or config['static_path'], open_browser)


def is_url_reachable(url, timeout=gui_probe_timeout):
    try:
        return httpx.get(url, timeout=timeout).status_code < 400
    except httpx.HTTPError as e:
        logger.info("%s not reachable: %s" % (url, e))
        return False


@cli.command()
@pass_options
def start(options):
    """Open the GUI in the web browser.

    Instruments that serve the GUI themselves are opened directly,
    otherwise the proxy web server is started.
    """
    controller = options.open_controller()
    candidate = controller.endpoint.gui_url()
    if candidate:
        logger.info("testing whether %s is reachable" % candidate)
        if is_url_reachable(candidate):
            controller.close()
            click.echo("opening %s" % candidate)
            click.launch(candidate)
            return
    config = options.config['webserver']
    with controller:
        click.echo("starting the web server at http://%s:%s/" % (config['host'], config['port']))
        run_webserver(options, controller, config['host'], config['port'], config['static_path'], True)
