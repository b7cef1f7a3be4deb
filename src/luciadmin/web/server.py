"""
The proxy web server. Routes:

- ``/.well-known/lucidac.json`` identifies the server and the instrument it proxies to
- ``/ws`` relays the JSONL protocol between the browser and the instrument
- ``/local/`` serves a local copy of the GUI, when given
- ``/`` redirects to the GUI
"""
import logging
import os

import uvicorn
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles

import luciadmin
from luciadmin.controller import Controller
from luciadmin.web.bridge import bridge

logger = logging.getLogger(__name__)

default_host = '127.0.0.1'
default_port = 8000

# where the GUI is found, with and without local static assets
default_gui_path = '/index.html'
local_gui_path = '/local/lucigui/'

# websocket close codes
INTERNAL_ERROR = 1011
TRY_AGAIN_LATER = 1013


def identification(controller: Controller = None, host_static_assets=False) -> dict:
    """ The document served at /.well-known/lucidac.json """
    target = controller.endpoint.to_url() if controller is not None else None
    return {
        'webserver': {
            'scenario': 'proxy',
            'name': 'luciadmin',
            'version': luciadmin.__version__,
        },
        'proxy': {
            'target': target,
        },
        'lucigui': {
            'host_static_assets': host_static_assets,
            'further_infos_here': None,
        },
    }


def create_app(controller: Controller = None, static_path=None, allow_origins=()) -> FastAPI:
    """
    Builds the proxy application.
    :param controller: the open instrument connection shared by all websocket sessions.
        Without one, websocket sessions are refused.
    :param static_path: directory with the GUI assets, served at /local
    :param allow_origins: origins allowed for cross-origin requests
    """
    app = FastAPI(title='luciadmin', version=luciadmin.__version__)
    app.state.session_active = False

    if allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(allow_origins),
            allow_methods=["*"],
            allow_headers=["*"],
        )

    host_static_assets = False
    if static_path:
        if os.path.isdir(static_path):
            logger.info("serving %s at /local" % static_path)
            app.mount('/local', StaticFiles(directory=static_path, html=True), name='local')
            host_static_assets = True
        else:
            logger.error("path %s is not a directory, not serving static assets" % static_path)
    gui_path = local_gui_path if host_static_assets else default_gui_path

    @app.get('/.well-known/lucidac.json')
    def identify():
        return identification(controller, host_static_assets)

    @app.get('/')
    def root():
        return RedirectResponse(gui_path)

    @app.websocket('/ws')
    async def websocket_endpoint(websocket: WebSocket):
        await websocket.accept()
        if controller is None or controller.closed:
            logger.warning("refusing websocket session, no instrument connected")
            await websocket.close(code=INTERNAL_ERROR, reason="no instrument connected")
            return
        if app.state.session_active:
            logger.warning("refusing websocket session, another session is active")
            await websocket.close(code=TRY_AGAIN_LATER, reason="another session is active")
            return
        app.state.session_active = True
        logger.info("websocket session from %s" % (websocket.client,))
        try:
            await bridge(websocket, controller)
        finally:
            app.state.session_active = False

    return app


def serve(app: FastAPI, host=default_host, port=default_port):
    """ runs the application until interrupted. """
    logger.info("webserver starting at http://%s:%s" % (host, port))
    uvicorn.run(app, host=host, port=port)
