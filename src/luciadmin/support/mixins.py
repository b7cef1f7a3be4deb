import threading


class ReprMixin:
    """
    Renders the object as its class name followed by the attributes
    in key sorted order, e.g. ``NetworkEndpoint(host='1.2.3.4', port=5732)``.
    """

    def __repr__(self):
        return type(self).__name__ + '(' + self._sorted_items_string() + ')'

    def _sorted_items_string(self):
        return ", ".join(str(key) + "=" + repr(val) for key, val in sorted(self.__dict__.items()))


class CommonEqualityMixin(object):
    """  a deep equals comparison for value objects. """
    local = threading.local()

    def __eq__(self, other):
        if not hasattr(CommonEqualityMixin.local, 'seen'):
            CommonEqualityMixin.local.seen = []
        seen = CommonEqualityMixin.local.seen
        return hasattr(other, '__dict__') and isinstance(other, self.__class__) \
            and type(other) is type(self) and self._dicts_equal(other, seen)

    def _dicts_equal(self, other, seen):
        p = (id(self), id(other))
        if p in seen:
            raise ValueError("recursive call %s" % str(p))

        d1 = self.__dict__
        d2 = other.__dict__
        try:
            seen.append(p)
            result = d1 == d2
        finally:
            seen.pop()
        return result

    def __ne__(self, other):
        return not self.__eq__(other)

    __hash__ = None


class ValueObjectMixin(CommonEqualityMixin, ReprMixin):
    """
    Equality, hashing and repr for immutable value objects. The hash is computed
    from the attribute values, so subclasses must not change them after construction.
    """

    def __hash__(self):
        return hash((type(self),) + tuple(sorted(self.__dict__.items())))
