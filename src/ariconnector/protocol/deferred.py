"""
The one-shot completion object returned by every command.

A DeferredResult is a concurrent.futures.Future with single-use continuation slots.
Continuations run on whichever thread resolves the result, or immediately on the attaching
thread when the result is already resolved.
"""
import logging
import threading
from concurrent.futures import Future, InvalidStateError

logger = logging.getLogger(__name__)


class ProgrammingError(Exception):
    """ Raised when a DeferredResult is used contrary to its contract. """


class AlreadyResolved(ProgrammingError):
    """ Raised when a DeferredResult is resolved or rejected a second time. """


class DeferredResult(Future):
    """ Describes the eventual outcome of an operation that has already been dispatched.
        The outcome is set once with resolve() or reject(). Callers attach at most one success
        continuation and at most one error continuation, before or after the outcome is known.
        Blocking callers may use value().
    """

    def __init__(self):
        super().__init__()
        self._slot_lock = threading.Lock()
        self._on_success = None
        self._on_error = None

    @classmethod
    def empty(cls):
        """ a new result that has already succeeded with no value. """
        result = cls()
        result.resolve(None)
        return result

    @classmethod
    def failed(cls, error: BaseException):
        """ a new result that has already failed with the given error. """
        result = cls()
        result.reject(error)
        return result

    @property
    def pending(self):
        return not self.done()

    @property
    def succeeded(self):
        return self.done() and self.exception() is None

    def cancel(self):
        """ dispatched commands cannot be cancelled. """
        return False

    def resolve(self, value=None):
        """ completes this result successfully.
            :raises AlreadyResolved: if this result has already been resolved or rejected.
        """
        try:
            self.set_result(value)
        except InvalidStateError as e:
            raise AlreadyResolved(self._describe_outcome()) from e

    def reject(self, error: BaseException):
        """ completes this result with an error.
            :raises AlreadyResolved: if this result has already been resolved or rejected.
        """
        try:
            self.set_exception(error)
        except InvalidStateError as e:
            raise AlreadyResolved(self._describe_outcome()) from e

    def resolve_or_reject(self, value):
        """sets the outcome, rejecting when the value is an exception"""
        if isinstance(value, BaseException):
            self.reject(value)
        else:
            self.resolve(value)

    def _describe_outcome(self):
        return "result already %s" % ("failed" if self.exception() is not None else "succeeded")

    def on_success(self, continuation):
        """ attaches the continuation called with the value when this result succeeds.
            :return: this result, so that on_error() can be chained.
        """
        with self._slot_lock:
            if self._on_success is not None:
                raise ProgrammingError("success continuation already attached")
            self._on_success = continuation
        self.add_done_callback(self._succeeded)
        return self

    def on_error(self, continuation):
        """ attaches the continuation called with the exception when this result fails.
            :return: this result, so that on_success() can be chained.
        """
        with self._slot_lock:
            if self._on_error is not None:
                raise ProgrammingError("error continuation already attached")
            self._on_error = continuation
        self.add_done_callback(self._failed)
        return self

    def _succeeded(self, future):
        if self.exception() is None:
            self._call(self._on_success, self.result())

    def _failed(self, future):
        error = self.exception()
        if error is not None:
            self._call(self._on_error, error)

    @staticmethod
    def _call(continuation, arg):
        try:
            continuation(arg)
        except Exception as e:
            logger.exception("continuation %s raised %s" % (continuation, e))

    def then(self, fn):
        """ composes this result with a function of its value.
        :return: a new DeferredResult that succeeds with fn(value), or fails with the error from
            this result or the error raised by fn.
        """
        derived = DeferredResult()

        def chain(future):
            error = future.exception()
            if error is not None:
                derived.reject(error)
                return
            try:
                value = fn(future.result())
            except Exception as e:
                derived.reject(e)
            else:
                derived.resolve(value)

        self.add_done_callback(chain)
        return derived

    def value(self, timeout=None):
        """ blocks until the outcome is known.
            :return: the value the result succeeded with
            :raises: the error the result failed with, or concurrent.futures.TimeoutError
        """
        return self.result(timeout)
