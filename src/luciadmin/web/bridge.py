"""
Relays lines between a websocket client and an instrument.

Each websocket text message is written to the instrument as one line, and each line
the instrument sends is forwarded as one text message. The controller's blocking
reads run on daemon threads so that the event loop is never blocked.
"""
import asyncio
import logging
import threading

from luciadmin.controller import Controller

logger = logging.getLogger(__name__)


def read_line_in_thread(controller: Controller, loop) -> asyncio.Future:
    """
    Reads one line from the controller on a daemon thread.
    :return: a future on the given loop, resolved with the line or the error.
    When the future is cancelled before the line arrives, the line is dropped.
    """
    future = loop.create_future()

    def resolve(setter, value):
        if not future.done():
            setter(value)

    def run():
        try:
            line = controller.read_line()
        except Exception as e:
            outcome = (future.set_exception, e)
        else:
            outcome = (future.set_result, line)
        try:
            loop.call_soon_threadsafe(resolve, *outcome)
        except RuntimeError:
            logger.debug("event loop closed, dropping %r" % (outcome[1],))

    threading.Thread(target=run, name="bridge-reader", daemon=True).start()
    return future


async def close_quietly(websocket):
    try:
        await websocket.close()
    except Exception as e:
        # already closed by the client
        logger.debug("websocket close: %s" % e)


async def bridge(websocket, controller: Controller):
    """
    Relays until either side ends. The websocket must already be accepted.
    When one direction ends the session is over: the other direction is cancelled and
    both are joined before the websocket is closed. Errors end the session and are
    logged, they are not raised.
    """
    loop = asyncio.get_running_loop()
    ended = asyncio.Event()

    async def instrument_to_client():
        try:
            while True:
                line = await read_line_in_thread(controller, loop)
                await websocket.send_text(line)
        except Exception as e:
            logger.info("instrument to client ended: %s" % e)
        finally:
            ended.set()

    async def client_to_instrument():
        try:
            while True:
                message = await websocket.receive_text()
                logger.debug("recv: %s" % message)
                await asyncio.to_thread(controller.write_line, message)
        except Exception as e:
            logger.info("client to instrument ended: %s" % e)
        finally:
            ended.set()

    tasks = [asyncio.ensure_future(instrument_to_client()), asyncio.ensure_future(client_to_instrument())]
    try:
        await ended.wait()
    finally:
        # both directions are joined before anything else is awaited
        for task in tasks:
            task.cancel()
        await asyncio.shield(asyncio.gather(*tasks, return_exceptions=True))
        await close_quietly(websocket)
    logger.info("bridge session to %s ended" % controller.endpoint)
