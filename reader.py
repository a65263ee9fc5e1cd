"""
reader.py
Card reader access. Only a simulated reader ships: it returns a fixed UID and
accepts writes, and can be told to fail so the device-error path is testable.
"""

from __future__ import annotations

import logging

from errors import DeviceError

logger = logging.getLogger(__name__)


class CardReader:
    def read_uid(self) -> str:
        raise NotImplementedError

    def write_card(self, uid: str, data: dict) -> None:
        raise NotImplementedError


class SimulatedReader(CardReader):
    def __init__(self, uid: str = "04:a1:b2:c3", fail: bool = False):
        self.uid = uid
        self.fail = fail
        self.written: dict[str, dict] = {}

    def read_uid(self) -> str:
        if self.fail or not self.uid:
            raise DeviceError("reader not responding")
        return self.uid

    def write_card(self, uid: str, data: dict) -> None:
        if self.fail:
            raise DeviceError("reader not responding")
        self.written[uid] = dict(data)
        logger.debug("Wrote %s to card %s", data, uid)
