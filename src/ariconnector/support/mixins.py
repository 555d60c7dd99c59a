"""
Mixins for the value objects passed between the channels and the client: commands, responses
and events.
"""


class StringerMixin:
    """ Renders the class name and the public attributes, in name order. """

    def __str__(self):
        return '%s(%s)' % (type(self).__name__, self._fields_string())

    def _fields_string(self):
        return ', '.join('%s=%r' % (key, value) for key, value in sorted(self.__dict__.items())
                         if not key.startswith('_'))


class CommonEqualityMixin:
    """
    Equality by type and attributes. Value objects are compared in tests and when
    handlers are removed, but they are mutable, so they are not hashable.
    """

    def __eq__(self, other):
        return isinstance(other, self.__class__) and self.__dict__ == other.__dict__

    def __ne__(self, other):
        return not self.__eq__(other)

    __hash__ = None
