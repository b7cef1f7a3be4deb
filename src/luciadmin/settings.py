"""
Helpers for the instrument's network settings, as returned by ``net_get`` and accepted by ``net_set``.

Settings are a tree of JSON objects. For display the tree is flattened to dotted keys.
Changes are given as flat ``key=value`` pairs, where the key is either ``section.name`` or
just ``name`` when only one section has a setting of that name.
"""
import copy
import logging

logger = logging.getLogger(__name__)


class SettingsError(ValueError):
    """ A settings change cannot be applied. """


def flatten(tree, prefix='') -> dict:
    """
    Flattens nested objects and lists into a single mapping with dotted keys.
    Empty objects and lists are kept as values.

    >>> flatten({'a': {'b': 1, 'c': [True, None]}, 'd': {}})
    {'a.b': 1, 'a.c.0': True, 'a.c.1': None, 'd': {}}
    """
    if isinstance(tree, dict):
        items = tree.items()
    elif isinstance(tree, list):
        items = ((str(i), v) for i, v in enumerate(tree))
    else:
        return {prefix: tree}
    result = {}
    for key, value in items:
        path = prefix + '.' + key if prefix else key
        if isinstance(value, (dict, list)) and value:
            result.update(flatten(value, path))
        else:
            result[path] = value
    return result


def format_value(value) -> str:
    """
    Renders a setting value the way it is written in JSON, strings without quotes.

    >>> format_value(True), format_value(None), format_value('lab'), format_value(3)
    ('true', 'null', 'lab', '3')
    """
    if value is True:
        return 'true'
    if value is False:
        return 'false'
    if value is None:
        return 'null'
    return str(value)


def treat_bool(text):
    """
    >>> treat_bool('TRUE'), treat_bool('false'), treat_bool('yes')
    (True, False, 'yes')
    """
    lowered = text.lower()
    if lowered == 'true':
        return True
    if lowered == 'false':
        return False
    return text


def parse_assignment(text):
    """
    Splits a ``key=value`` command line argument.

    >>> parse_assignment('wifi.ssid=lab=1')
    ('wifi.ssid', 'lab=1')
    """
    key, sep, value = text.partition('=')
    if not sep or not key:
        raise SettingsError("expected key=value, got %r" % text)
    return key, value


def apply_patch(current: dict, patch: dict) -> dict:
    """
    Applies flat changes to a settings tree.

    A key ``head.tail`` sets ``tail`` in the section ``head``, creating the section when missing.
    A key without a dot is looked up in all sections: when no section has it, it is set at the top level,
    when exactly one has it, it is set there. Values "true" and "false" become booleans.

    :param current: the settings tree, not modified
    :param patch: mapping of key to string value
    :return: the changed copy of the tree
    raises SettingsError when a key is ambiguous or a section is not an object.
    """
    result = copy.deepcopy(current)
    for key, text in patch.items():
        value = treat_bool(text)
        head, dot, tail = key.partition('.')
        if dot:
            section = result.setdefault(head, {})
            if not isinstance(section, dict):
                raise SettingsError("cannot set %s, %s is not a section" % (key, head))
            section[tail] = value
            continue

        candidates = sorted(name for name, section in result.items()
                            if isinstance(section, dict) and key in section)
        if not candidates:
            logger.debug("%s not found in any section, setting it at the top level" % key)
            result[key] = value
        elif len(candidates) == 1:
            result[candidates[0]][key] = value
        else:
            raise SettingsError("found multiple candidates for key '%s', specify it fully qualified "
                                "as one of %s" % (key, ', '.join(c + '.' + key for c in candidates)))
    return result
