import time


class RetryStrategy:
    """ Decides when a failed connection is tried again. The base strategy always retries at once. """

    def __call__(self, current_time=None, dryRun=False):
        """ :return: the number of seconds until the next attempt. Zero or less means try now. """
        return 0

    def succeeded(self):
        """ notes that the last attempt connected. """


class BackoffRetryStrategy(RetryStrategy):
    """
    Retries after a wait that doubles with each consecutive failed attempt, from period up to
    max_period. A successful attempt resets the wait to period.

    The first attempt, and the first attempt after a connection is lost, are made at once when the
    wait since the previous attempt has already passed.

    :param period: seconds between the first and second attempts
    :param max_period: the longest wait. Defaults to period, which retries at a fixed period.
    """

    def __init__(self, period, max_period=None):
        self.period = period
        self.max_period = max(period, max_period if max_period is not None else period)
        self.wait = period
        self.next_attempt = None

    def __call__(self, current_time=None, dryRun=False):
        """
        :param current_time: the current time. Defaults to time.time()
        :param dryRun: when True, an attempt that is due is not recorded
        """
        if current_time is None:
            current_time = time.time()
        if self.next_attempt is not None and self.next_attempt > current_time:
            return self.next_attempt - current_time
        if not dryRun:
            self.next_attempt = current_time + self.wait
            self.wait = min(self.wait * 2, self.max_period)
        return 0

    def succeeded(self):
        self.wait = self.period
