"""
Remote context document loader using Requests.

.. module:: ldbind.documentloader.requests
  :synopsis: Remote document loader using Requests
"""
import logging
import re
import string
import urllib.parse as urllib_parse

from ldbind.error import JsonLdError
from ldbind.iri import resolve

logger = logging.getLogger(__name__)


def requests_document_loader(secure=False, max_link_follows=2, **kwargs):
    """
    Create a Requests document loader.
    Can be used to setup extra Requests args such as verify, cert, timeout,
    or others.
    :param secure: require all requests to use HTTPS (default: False).
    :param max_link_follows: Maximum number of alternate link follows allowed.
    :param **kwargs: extra keyword args for Requests get() call.
    :return: the RemoteDocument loader function.
    """
    import requests

    from ldbind.jsonld import ACCEPT_HEADER, LINK_HEADER_REL, parse_link_header

    def loader(url, options=None, link_follow_count=0):
        """
        Retrieves JSON-LD at the given URL.
        :param url: the URL to retrieve.
        :param [options]: the request options.
          [headers] the request headers.
        :return: the RemoteDocument.
        """
        options = options or {}
        try:
            validate_url(url, secure)
            headers = options.get('headers')
            if headers is None:
                headers = {'Accept': ACCEPT_HEADER}
            logger.debug('GET %s', url)
            response = requests.get(url, headers=headers, **kwargs)
            response.raise_for_status()

            content_type = response.headers.get('content-type')
            if not content_type:
                content_type = 'application/octet-stream'
            doc = {
                'contentType': content_type,
                'contextUrl': None,
                'documentUrl': response.url,
                'document': None
            }
            try:
                doc['document'] = response.json()
            except ValueError:
                # body is not JSON, a link header may still point to it
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
                    alternate_url = resolve(linked_alternate['target'], url)
                    return loader(
                        alternate_url, options=options,
                        link_follow_count=link_follow_count + 1)
            return doc
        except JsonLdError:
            raise
        except Exception as cause:
            raise JsonLdError(
                'Could not retrieve a JSON-LD document from the URL.',
                'jsonld.LoadDocumentError', {'url': url},
                code='loading document failed', cause=cause)

    return loader


def validate_url(url, secure=False):
    """
    Raises an exception unless the URL can be dereferenced.

    :param url: the URL to check.
    :param [secure]: True to require https.
    """
    pieces = urllib_parse.urlparse(url)
    if (not all([pieces.scheme, pieces.netloc]) or
            pieces.scheme not in ['http', 'https'] or
            not set(pieces.netloc) <= set(
                string.ascii_letters + string.digits + '-.:')):
        raise JsonLdError(
            'URL could not be dereferenced; only "http" and "https" '
            'URLs are supported.',
            'jsonld.InvalidUrl', {'url': url},
            code='loading document failed')
    if secure and pieces.scheme != 'https':
        raise JsonLdError(
            'URL could not be dereferenced; secure mode enabled and '
            'the URL\'s scheme is not "https".',
            'jsonld.InvalidUrl', {'url': url},
            code='loading document failed')
