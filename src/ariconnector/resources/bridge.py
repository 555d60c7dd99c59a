from enum import Enum

from ariconnector.protocol.commands import NO_VALUE, query
from ariconnector.protocol.deferred import DeferredResult
from ariconnector.resources.base import ResourceHandle
from ariconnector.resources.dtmf import TerminationDtmf


class Role(Enum):
    """ The role a channel takes in a bridge. """
    announcer = 'announcer'
    participant = 'participant'

    def __str__(self):
        return role_values[self]


role_values = {
    Role.announcer: 'announcer',
    Role.participant: 'participant',
}


def channel_id(channel):
    """ accepts a channel handle or a channel identifier. """
    return channel if isinstance(channel, str) else channel.id


class Bridge(ResourceHandle):
    """
    A mixing bridge. Channels added to the bridge hear each other, and media played to the bridge
    is heard by every channel in it.

    Use Bridge.create() for a new bridge, or AriClient.bridge() for one that already exists.
    """
    resource_type = 'bridge'
    collection = 'bridges'
    destroyed_event = 'BridgeDestroyed'

    @classmethod
    def create(cls, client, bridge_type='mixing', bridge_id='', name='') -> DeferredResult:
        """
        Creates a bridge on the server.
        :return: a DeferredResult that succeeds with the new Bridge.
        """
        return cls._create(client, '/bridges', query(type=bridge_type, bridgeId=bridge_id, name=name))

    def add(self, channel, role=Role.participant) -> DeferredResult:
        return self._command('POST', 'addChannel',
                             params=query(channel=channel_id(channel), role=str(role) if role else ''))

    def add_all(self, channels) -> DeferredResult:
        """ adds several channels with one command. """
        return self._command('POST', 'addChannel', params=query(channel=[channel_id(c) for c in channels]))

    def remove(self, channel) -> DeferredResult:
        return self._command('POST', 'removeChannel', params=query(channel=channel_id(channel)))

    def start_moh(self, moh_class='') -> DeferredResult:
        """ plays music on hold to the bridge. """
        return self._command('POST', 'moh', params=query(mohClass=moh_class))

    def stop_moh(self) -> DeferredResult:
        return self._command('DELETE', 'moh')

    def play(self, media, lang='', playback_id='', offsetms=NO_VALUE, skipms=NO_VALUE) -> DeferredResult:
        """
        Plays media to the bridge.
        :return: a DeferredResult that succeeds with the playback description.
        """
        return self._command('POST', 'play', params=query(media=media, lang=lang, playbackId=playback_id,
                                                          offsetms=offsetms, skipms=skipms))

    def record(self, name, format, max_duration_seconds=NO_VALUE, max_silence_seconds=NO_VALUE,
               if_exists='', beep=False, terminate_on=TerminationDtmf.none) -> DeferredResult:
        """
        Records the bridge's mixed audio.
        :return: a DeferredResult that succeeds with the live recording description.
        """
        return self._command('POST', 'record',
                             params=query(name=name, format=format, terminateOn=str(terminate_on), beep=beep,
                                          ifExists=if_exists, maxDurationSeconds=max_duration_seconds,
                                          maxSilenceSeconds=max_silence_seconds))
