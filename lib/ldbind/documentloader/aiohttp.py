"""
Remote context document loader using aiohttp.

.. module:: ldbind.documentloader.aiohttp
  :synopsis: Remote document loader using aiohttp
"""

import asyncio
import logging
import re
import threading

from ldbind.documentloader.requests import validate_url
from ldbind.error import JsonLdError
from ldbind.iri import resolve

logger = logging.getLogger(__name__)

# Background event loop (used when inside an existing async environment)
_background_loop = None
_background_thread = None
_background_lock = threading.Lock()


def _ensure_background_loop():
    """Start a persistent background event loop if not running."""
    global _background_loop, _background_thread
    with _background_lock:
        if _background_loop is None:
            _background_loop = asyncio.new_event_loop()

            def run_loop(loop):
                asyncio.set_event_loop(loop)
                loop.run_forever()

            _background_thread = threading.Thread(
                target=run_loop, args=(_background_loop,), daemon=True)
            _background_thread.start()
    return _background_loop


def aiohttp_document_loader(secure=False, max_link_follows=2, **kwargs):
    """
    Create a document loader using aiohttp. The returned loader is a plain
    synchronous function.

    :param secure: require all requests to use HTTPS (default: False).
    :param max_link_follows: Maximum number of alternate link follows allowed.
    :param **kwargs: extra keyword args for the aiohttp request get() call.

    :return: the RemoteDocument loader function.
    """
    import aiohttp

    from ldbind.jsonld import ACCEPT_HEADER, LINK_HEADER_REL, parse_link_header

    async def async_loader(url, headers, link_follow_count=0):
        """
        Retrieves JSON-LD at the given URL asynchronously.

        :param url: the URL to retrieve.
        :param headers: the request headers.

        :return: the RemoteDocument.
        """
        try:
            validate_url(url, secure)
            logger.debug('GET %s', url)
            async with aiohttp.ClientSession() as session:
                async with session.get(url,
                                       headers=headers,
                                       **kwargs) as response:
                    response.raise_for_status()
                    content_type = response.headers.get('content-type')
                    if not content_type:
                        content_type = 'application/octet-stream'
                    doc = {
                        'contentType': content_type,
                        'contextUrl': None,
                        'documentUrl': response.url.human_repr(),
                        'document': None
                    }
                    try:
                        # allow any content type, like Requests does
                        doc['document'] = await response.json(
                            content_type=None)
                    except ValueError:
                        pass
                    link_header = response.headers.get('link')

            if link_header:
                links = parse_link_header(link_header)
                linked_context = links.get(LINK_HEADER_REL)
                # only 1 related link header permitted
                if linked_context and content_type != 'application/ld+json':
                    if isinstance(linked_context, list):
                        raise JsonLdError(
                            'URL could not be dereferenced, '
                            'it has more than one '
                            'associated HTTP Link Header.',
                            'jsonld.LoadDocumentError',
                            {'url': url},
                            code='multiple context link headers')
                    doc['contextUrl'] = linked_context['target']
                linked_alternate = links.get('alternate')
                # if not JSON-LD, alternate may point there
                if (isinstance(linked_alternate, dict) and
                        linked_alternate.get('type') ==
                        'application/ld+json' and
                        not re.match(
                            r'^application\/(\w*\+)?json$', content_type)):
                    if link_follow_count >= max_link_follows:
                        raise JsonLdError(
                            'URL could not be dereferenced; too many '
                            'alternate links followed.',
                            'jsonld.LoadDocumentError',
                            {'url': url, 'max': max_link_follows},
                            code='loading document failed')
                    return await async_loader(
                        resolve(linked_alternate['target'], url), headers,
                        link_follow_count + 1)
            return doc
        except JsonLdError:
            raise
        except Exception as cause:
            raise JsonLdError(
                'Could not retrieve a JSON-LD document from the URL.',
                'jsonld.LoadDocumentError', {'url': url},
                code='loading document failed', cause=cause)

    def loader(url, options=None):
        """
        Retrieves JSON-LD at the given URL synchronously.

        Works safely in both synchronous and asynchronous environments.

        :param url: the URL to retrieve.
        :param [options]: the request options.
          [headers] the request headers.

        :return: the RemoteDocument.
        """
        options = options or {}
        headers = options.get('headers', {'Accept': ACCEPT_HEADER})

        # Detect whether we're already in an async environment
        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None

        # Sync environment
        if not running_loop or not running_loop.is_running():
            return asyncio.run(async_loader(url, headers))

        # Inside async environment: use background event loop
        loop = _ensure_background_loop()
        future = asyncio.run_coroutine_threadsafe(
            async_loader(url, headers), loop)
        return future.result()

    return loader
