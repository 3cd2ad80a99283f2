from typing import Protocol

from canvas_fs.core.events import ChangeEvent


class ChangeObserver(Protocol):
    async def notify(self, event: ChangeEvent) -> None: ...
