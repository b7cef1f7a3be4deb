"""
    Finds instruments on the local network. Instruments announce the JSONL service over
    zeroconf (mDNS). A DiscoverySession browses for the service for a limited time window
    and produces a NetworkEndpoint for each instrument found.

    The zeroconf browser runs on its own thread and pushes advertisements to a queue.
    A collector thread resolves each advertisement to an endpoint. Both queues are closed
    when the session ends, so late announcements are discarded.
"""
import logging
import socket
import threading
import time

from zeroconf import Zeroconf, ServiceBrowser, IPVersion

from luciadmin.connector.socketconn import NetworkEndpoint, DEFAULT_PORT
from luciadmin.support.mixins import ValueObjectMixin
from luciadmin.support.queues import ClosableQueue, QueueClosed, Empty

logger = logging.getLogger(__name__)

# the zeroconf subtype announced by the instruments
service_type = 'lucijsonl'

# seconds to wait for announcements
default_timeout = 1.0


class AdvertisementRecord(ValueObjectMixin):
    """ An instrument announcement: the advertised host name and its IPv4 address. """

    def __init__(self, hostname: str, address: str):
        self.hostname = hostname
        self.address = address


def qualify_service_type(service_subtype):
    """
    >>> qualify_service_type("abc")
    '_abc._tcp.local.'
    """
    return "_" + service_subtype + "._tcp.local."


def resolves_to(hostname, address):
    """ determines if forward resolution of the hostname yields the given IPv4 address. """
    try:
        infos = socket.getaddrinfo(hostname, None, socket.AF_INET)
    except OSError as e:
        logger.debug("cannot resolve %s: %s" % (hostname, e))
        return False
    return any(info[4][0] == address for info in infos)


def endpoint_for(record: AdvertisementRecord) -> NetworkEndpoint:
    """
    Builds the endpoint for an announcement. The host name is preferred
    when it resolves to the announced address, otherwise the address is used.
    """
    if record.hostname and resolves_to(record.hostname, record.address):
        return NetworkEndpoint(record.hostname, DEFAULT_PORT)
    return NetworkEndpoint(record.address, DEFAULT_PORT)


class DiscoverySession:
    """
    A single discovery run. Use find_one() or find_all(), each ends the session.

    :param service_subtype: the application specific service name, qualified with the TCP and local supertypes.
    :param use_zeroconf: when False no browser is started and records are only
        those put on the records queue directly.
    :param resolve: callable that turns an AdvertisementRecord into an endpoint.
    """

    def __init__(self, service_subtype=service_type, use_zeroconf=True, resolve=endpoint_for):
        self.records = ClosableQueue()
        self.found = ClosableQueue()
        self._resolve = resolve
        self._lock = threading.Lock()
        self._closed = False
        self.zeroconf = None
        self.browser = None
        self._collector = threading.Thread(target=self._collect, name="discovery-collector", daemon=True)
        self._collector.start()
        if use_zeroconf:
            fqn = qualify_service_type(service_subtype)
            logger.info("browsing for zeroconf services of type %s" % fqn)
            try:
                self.zeroconf = Zeroconf()
                self.browser = ServiceBrowser(self.zeroconf, fqn, self)
            except BaseException:
                self.close()
                raise

    @property
    def closed(self):
        return self._closed

    @staticmethod
    def record_for_service(zeroconf, type, name):
        """
        constructs the AdvertisementRecord from the zeroconf info, None when the
        service has no info or no IPv4 address.
        """
        info = zeroconf.get_service_info(type, name)
        if not info:
            return None
        addresses = info.parsed_addresses(IPVersion.V4Only)
        if not addresses:
            return None
        return AdvertisementRecord((info.server or '').rstrip('.'), addresses[0])

    def add_service(self, zeroconf, type, name):
        """ notification from the service browser that a service has been added """
        logger.info("service available: %s" % name)
        record = self.record_for_service(zeroconf, type, name)
        if record:
            self.records.put(record)
        else:
            logger.warning("no IPv4 info for service %s type %s" % (name, type))

    def update_service(self, zeroconf, type, name):
        logger.debug("service updated: %s" % name)

    def remove_service(self, zeroconf, type, name):
        logger.info("service unavailable: %s" % name)

    def _collect(self):
        for record in self.records:
            endpoint = self._resolve(record)
            logger.info("found %s for %s" % (endpoint, record))
            self.found.put(endpoint)

    def find_one(self, timeout=default_timeout):
        """
        Waits for the first instrument.
        :return: the endpoint found, or None when nothing was found within the timeout.
        """
        try:
            endpoint = self.found.get(timeout=timeout)
            logger.info("decided for %s" % endpoint)
            return endpoint
        except (Empty, QueueClosed):
            logger.info("no instrument found within %ss" % timeout)
            return None
        finally:
            self.close()

    def find_all(self, timeout=default_timeout):
        """
        Collects the instruments announced within the timeout.
        :return: list of distinct endpoints, in the order they were found.
        """
        results = []
        deadline = time.monotonic() + timeout
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                endpoint = self.found.get(timeout=remaining)
                if endpoint not in results:
                    results.append(endpoint)
        except (Empty, QueueClosed):
            pass
        finally:
            self.close()
        logger.info("found %d instrument(s)" % len(results))
        return results

    def close(self):
        """ ends the session. Safe to call more than once. """
        with self._lock:
            if self._closed:
                return
            self._closed = True
        if self.browser is not None:
            self.browser.cancel()
        if self.zeroconf is not None:
            self.zeroconf.close()
        self.records.close()
        self.found.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def discover(timeout=default_timeout, service_subtype=service_type):
    """ lists the endpoints of all instruments announced within the timeout. """
    return DiscoverySession(service_subtype).find_all(timeout)


def discover_one(timeout=default_timeout, service_subtype=service_type):
    """ returns the endpoint of the first instrument announced within the timeout, or None. """
    return DiscoverySession(service_subtype).find_one(timeout)
