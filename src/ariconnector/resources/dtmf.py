from enum import Enum


class TerminationDtmf(Enum):
    """ The DTMF digit that stops a recording. """
    none = 'none'
    any = 'any'
    star = 'star'
    pound = 'pound'

    def __str__(self):
        return wire_values[self]


wire_values = {
    TerminationDtmf.none: 'none',
    TerminationDtmf.any: 'any',
    TerminationDtmf.star: '*',
    TerminationDtmf.pound: '#',
}
