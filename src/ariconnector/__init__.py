"""


ARI Connections

- Transport: the command channel. Commands go out as HTTP requests; responses come back
  asynchronously on worker threads. HttpTransport is the implementation.
- EventFeed: the event channel. Events pushed by the server arrive over a websocket on a
  background thread. The feed reconnects, backing off between failed attempts.
- DeliveryLoop - both channels post what they receive here. Responses and events are delivered
  one at a time, in arrival order, on the delivery thread.
- CommandDispatcher - assigns each command a correlation key, registers it with the
  ResponseCorrelator and hands it to the transport. The caller gets a DeferredResult back
  straight away.
- ResponseCorrelator - matches responses to pending commands and completes each command's
  DeferredResult exactly once. Responses for unknown keys are logged and dropped.
- EventRouter - passes each event to the handlers subscribed to the resource it is about,
  then to listeners registered for the event type.
- resource handles - Bridge and Channel. A handle sends its resource's commands and follows its
  resource's events. AriClient keeps at most one live handle per resource.


## Threading

Application code calls into the client from any thread. Nothing it calls waits on the server:
commands return a DeferredResult, and continuations attached to it run on the delivery thread
once the response arrives (or at once, when attached after the result is known).

Continuations and event handlers share the delivery thread, so they must not block. To wait
for a result, call value() from an application thread.

Connection changes of the event feed are queued, and fired on the application thread that
calls AriClient.update().


## Destroying resources

A handle is destroyed at most once, whichever comes first of destroy(), the handle being
garbage collected while alive, or the server's destroyed event. Only the first two send a
delete command. Operations on a handle that is no longer alive do nothing.
"""
