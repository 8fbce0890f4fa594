import os

import curio

from . import __version__, gvars


class ForwardingSupervisor:
    """Bind and run a set of relays side by side.

    A bind failure aborts everything unless ``keep_going`` is set, in which
    case the failed relay is dropped and the others still run. The same
    policy applies to a relay that dies after it started.
    """

    def __init__(self, relays, *, keep_going=False, logger=None):
        self.relays = list(relays)
        self.keep_going = keep_going
        self.logger = logger or gvars.logger

    def bind(self):
        bound = []
        error = None
        for relay in self.relays:
            try:
                relay.bind()
            except OSError as e:
                self.logger.error(f"{relay} bind failed: {e}")
                error = e
                if not self.keep_going:
                    break
            else:
                bound.append(relay)
        if error is not None and (not self.keep_going or not bound):
            for relay in bound:
                relay.unbind()
            raise error
        self.relays = bound
        return bound

    async def run(self):
        error = None
        async with curio.TaskGroup() as g:
            for relay in self.relays:
                await g.spawn(self._serve, relay)
            address = ", ".join(
                f"{relay.proto.lower()}://{relay.bind_address}" for relay in self.relays
            )
            pid = os.getpid()
            self.logger.info(
                f"{__package__}/{__version__} listen on {address} pid: {pid}"
            )
            while True:
                task = await g.next_done()
                if task is None:
                    break
                error = await task.join()
                if error is not None and not self.keep_going:
                    await g.cancel_remaining()
                    break
        return error

    async def _serve(self, relay):
        try:
            await relay.serve()
        except curio.errors.TaskCancelled:
            pass
        except Exception as e:
            self.logger.exception(f"{relay} stopped: {e}")
            return e
