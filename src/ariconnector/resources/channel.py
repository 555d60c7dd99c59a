from ariconnector.protocol.commands import NO_VALUE, query
from ariconnector.protocol.deferred import DeferredResult
from ariconnector.resources.base import ResourceHandle
from ariconnector.resources.dtmf import TerminationDtmf


class Channel(ResourceHandle):
    """
    A call leg. Destroying a channel hangs it up.
    """
    resource_type = 'channel'
    collection = 'channels'
    destroyed_event = 'ChannelDestroyed'

    @classmethod
    def originate(cls, client, endpoint, app='', app_args='', extension='', context='', priority=NO_VALUE,
                  caller_id='', timeout=NO_VALUE, channel_id='') -> DeferredResult:
        """
        Creates a channel by calling an endpoint.
        :return: a DeferredResult that succeeds with the new Channel.
        """
        return cls._create(client, '/channels',
                           query(endpoint=endpoint, app=app, appArgs=app_args, extension=extension, context=context,
                                 priority=priority, callerId=caller_id, timeout=timeout, channelId=channel_id))

    def answer(self) -> DeferredResult:
        return self._command('POST', 'answer')

    def ring(self) -> DeferredResult:
        return self._command('POST', 'ring')

    def ring_stop(self) -> DeferredResult:
        return self._command('DELETE', 'ring')

    def mute(self, direction='both') -> DeferredResult:
        return self._command('POST', 'mute', params=query(direction=direction))

    def unmute(self, direction='both') -> DeferredResult:
        return self._command('DELETE', 'mute', params=query(direction=direction))

    def hold(self) -> DeferredResult:
        return self._command('POST', 'hold')

    def unhold(self) -> DeferredResult:
        return self._command('DELETE', 'hold')

    def send_dtmf(self, dtmf, before=NO_VALUE, between=NO_VALUE, duration=NO_VALUE, after=NO_VALUE) -> DeferredResult:
        return self._command('POST', 'dtmf', params=query(dtmf=dtmf, before=before, between=between,
                                                          duration=duration, after=after))

    def play(self, media, lang='', playback_id='', offsetms=NO_VALUE, skipms=NO_VALUE) -> DeferredResult:
        return self._command('POST', 'play', params=query(media=media, lang=lang, playbackId=playback_id,
                                                          offsetms=offsetms, skipms=skipms))

    def record(self, name, format, max_duration_seconds=NO_VALUE, max_silence_seconds=NO_VALUE,
               if_exists='', beep=False, terminate_on=TerminationDtmf.none) -> DeferredResult:
        return self._command('POST', 'record',
                             params=query(name=name, format=format, terminateOn=str(terminate_on), beep=beep,
                                          ifExists=if_exists, maxDurationSeconds=max_duration_seconds,
                                          maxSilenceSeconds=max_silence_seconds))

    def hangup(self, reason='') -> DeferredResult:
        """ hangs up the channel. Same as destroy(), with the hangup reason sent to the server. """
        return self._destroy(query(reason=reason))
