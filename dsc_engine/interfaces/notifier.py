"""Notifier protocol — where the health monitor sends position logs and alerts."""
from typing import Protocol


class Notifier(Protocol):
    """Delivery channel for monitor output.

    Both methods return ``False`` when the message could not be delivered;
    the monitor logs that and moves on to the next channel.
    """

    async def send_alert(self, message: str, subject: str = "") -> bool:
        """Deliver an audible alert for a liquidatable or low-health account."""
        ...

    async def send_log(self, message: str, silent: bool = True) -> bool:
        """Deliver a routine per-account report."""
        ...
