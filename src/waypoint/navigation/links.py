"""Link filtering for click interception.

Only links that stay inside the application are routed in-process;
everything else is left to the platform.
"""


def is_routable_link(href: str, use_fragment: bool) -> bool:
    """Check whether a clicked *href* should be handled by the navigator.

    Fragment mode routes ``#...`` links. Path mode routes **relative
    paths** on the same origin:

    - Must be a non-empty string
    - Must start with ``/``
    - Must **not** start with ``//`` (protocol-relative URL)
    - Must **not** contain ``://`` (absolute URL with scheme)

    Examples::

        >>> is_routable_link("/inbox/42", use_fragment=False)
        True
        >>> is_routable_link("https://example.com/", use_fragment=False)
        False
        >>> is_routable_link("#/inbox", use_fragment=True)
        True
        >>> is_routable_link("/inbox", use_fragment=True)
        False
    """
    if not href or not isinstance(href, str):
        return False
    if use_fragment:
        return href.startswith("#")
    if not href.startswith("/"):
        return False
    if href.startswith("//"):
        return False
    return "://" not in href
