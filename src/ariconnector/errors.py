class AriError(Exception):
    """ Base class for errors reported through a DeferredResult. """
