"""
Resolution of node identifiers against a context's ``@base``.

- ``resolve()`` turns a relative identifier into an absolute IRI.
- ``relativize()`` is its inverse, used when encoding under a base.
"""

from urllib.parse import ParseResult, urljoin, urlparse, urlunparse


def remove_dot_segments(path: str) -> str:
    """
    Removes dot segments ('.' and '..') from a URL path, as described in
    RFC 3986 section 5.2.4.

    :param path: the path to normalize.

    :return: the normalized path.
    """
    output = []
    for segment in path.split('/'):
        if segment == '.':
            continue
        if segment == '..':
            if len(output) > 1:
                output.pop()
            continue
        output.append(segment)
    rval = '/'.join(output)
    # a trailing dot segment still names a directory
    if path.endswith(('/.', '/..')):
        rval += '/'
    if path.startswith('/') and not rval.startswith('/'):
        rval = '/' + rval
    return rval


def resolve(relative_iri: str, base_iri: str = None) -> str:
    """
    Resolves a relative IRI against a base IRI.

    :param relative_iri: the IRI to resolve.
    :param base_iri: the base IRI.

    :return: the absolute IRI.
    """
    if ':' in relative_iri:
        # already absolute
        return relative_iri

    if not base_iri:
        raise ValueError(
            f"Found invalid relative IRI '{relative_iri}' for a missing "
            "baseIRI")
    if ':' not in base_iri:
        raise ValueError(
            f"Found invalid baseIRI '{base_iri}' for value '{relative_iri}'")

    # fragments of the base never carry over
    base_iri = base_iri.split('#', 1)[0]
    if not relative_iri:
        return base_iri
    if relative_iri.startswith('#'):
        return base_iri + relative_iri
    return urljoin(base_iri, relative_iri)


def relativize(absolute_iri: str, base_iri: str = '') -> str:
    """
    Makes an absolute IRI relative to a base IRI when both share scheme and
    authority.

    :param absolute_iri: the absolute IRI.
    :param base_iri: the base IRI.

    :return: the relative IRI, or the absolute IRI if it is not under base.
    """
    if not base_iri:
        return absolute_iri

    base = urlparse(base_iri)
    if not base.scheme:
        raise ValueError(
            f"Found invalid baseIRI '{base_iri}' for value '{absolute_iri}'")

    rel = urlparse(absolute_iri)
    if not (base.scheme == rel.scheme and
            parse_authority(base) == parse_authority(rel)):
        return absolute_iri

    # drop common leading segments, keeping the last one unless there is a
    # query or fragment to hang off it
    base_segments = remove_dot_segments(base.path).split('/')
    iri_segments = remove_dot_segments(rel.path).split('/')
    last = 0 if (rel.fragment or rel.query) else 1
    while (base_segments and len(iri_segments) > last and
            base_segments[0] == iri_segments[0]):
        base_segments.pop(0)
        iri_segments.pop(0)

    rval = ''
    if base_segments:
        # the final base segment is a file name, not a directory
        base_segments.pop()
        rval += '../' * len(base_segments)
    rval += '/'.join(iri_segments)

    # relative IRIs must not look like keywords
    if rval.startswith('@'):
        rval = './' + rval

    return urlunparse(
        ('', '', rval, '', rel.query or '', rel.fragment or '')) or './'


def parse_authority(parsed_iri: ParseResult) -> str:
    """
    Gets the authority of a parsed IRI with any default port removed.

    :param parsed_iri: the result of ``urlparse``.

    :return: the authority, or None when there is none.
    """
    authority = parsed_iri.netloc or None
    try:
        port = parsed_iri.port
    except ValueError:
        port = None
    if authority is not None and port is not None:
        if ((parsed_iri.scheme == 'https' and port == 443) or
                (parsed_iri.scheme == 'http' and port == 80)):
            authority = authority.rsplit(':', 1)[0]
    return authority
