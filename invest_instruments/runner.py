#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from typing import Callable, Dict, Iterable, List, Optional, TextIO, Tuple
from datetime import datetime, timedelta, timezone
from functools import partial
import logging

from google.protobuf import text_format

from invest_instruments.client.instruments import InstrumentsServiceClient
from invest_instruments.common.utils import from_timestamp, quotation_to_float
from invest_instruments.proto import instruments_pb2 as grpc_buffer
from invest_instruments.utils.logging import step_logger

logger = logging.getLogger("__main__")

DEFAULT_QUERIES = ("TCSG", "Тинькофф")
DEFAULT_EXCHANGE = "MOEX"
DEFAULT_SHARE_UID = "6afa6f80-03a7-4d83-9cf0-c19d7d021f76"
DEFAULT_BOND_FIGI = "BBG00QXGFHS6"
DEFAULT_BONDS_LIMIT = 5

# Steps run in this order, a subset keeps the order
STEPS = (
    "find_instrument",
    "trading_schedules",
    "share",
    "bonds",
    "bond",
    "accrued_interests",
    "bond_coupons",
    "dividends",
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InstrumentsRunner:
    """Issues the instrument queries one after another and prints the results.

    Every query is issued once, a failed query is logged and the next one still runs.
    """

    __name__ = "Instruments-Runner"

    def __init__(
        self,
        service: InstrumentsServiceClient,
        queries: Iterable[str] = DEFAULT_QUERIES,
        exchange: str = DEFAULT_EXCHANGE,
        share_uid: str = DEFAULT_SHARE_UID,
        bond_figi: str = DEFAULT_BOND_FIGI,
        bonds_limit: int = DEFAULT_BONDS_LIMIT,
        steps: Optional[Iterable[str]] = None,
        now: Callable[[], datetime] = _utc_now,
        output: Optional[TextIO] = None,
    ):
        if bonds_limit < 0:
            raise ValueError(f"Bonds limit must not be negative, got: '{bonds_limit}'")

        self.service = service
        self.queries = list(queries)
        self.exchange = exchange
        self.share_uid = share_uid
        self.bond_figi = bond_figi
        self.bonds_limit = bonds_limit
        self.now = now
        self.output = output

        _steps = set(STEPS if steps is None else steps)
        _unknown = _steps.difference(STEPS)
        if _unknown:
            raise ValueError(f"Unknown steps: {sorted(_unknown)}")
        self.steps = [step for step in STEPS if step in _steps]

    def _print(self, line: str) -> None:
        print(line, file=self.output)

    def plan(self) -> List[Tuple[str, Callable]]:
        _plan: List[Tuple[str, Callable]] = []
        for step in self.steps:
            if step == "find_instrument":
                _plan.extend(
                    (f"{step}:{query}", partial(self.find_instrument, query))
                    for query in self.queries
                )
            else:
                _plan.append((step, getattr(self, step)))

        return _plan

    async def run(self) -> Dict[str, bool]:
        results: Dict[str, bool] = {}
        for name, step in self.plan():
            results[name] = await step()

        logger.info(
            f"{self.__name__}: Completed ({sum(results.values())}/{len(results)}) queries"
        )
        return results

    @step_logger("FindInstrument")
    async def find_instrument(self, query: str) -> None:
        reply = await self.service.find_instrument(query)
        for instrument in reply.instruments:
            self._print(f"query '{query}' - {instrument.name}, uid - {instrument.uid}")

    @step_logger("TradingSchedules")
    async def trading_schedules(self) -> None:
        _now = self.now()
        reply = await self.service.trading_schedules(
            self.exchange, _now, _now + timedelta(hours=24)
        )
        for schedule in reply.exchanges:
            self._print(f"exchange = {schedule.exchange}, days = {len(schedule.days)}")
            for day in schedule.days:
                self._print(
                    f"day = {from_timestamp(day.date).date()}, trading = {day.is_trading_day}, "
                    f"start = {from_timestamp(day.start_time)}, end = {from_timestamp(day.end_time)}"
                )

    @step_logger("ShareBy")
    async def share(self) -> None:
        reply = await self.service.share_by_uid(self.share_uid)
        self._print(
            f"{reply.instrument.ticker} share currency - {reply.instrument.currency}, "
            f"ipo date - {from_timestamp(reply.instrument.ipo_date)}"
        )

    @step_logger("Bonds")
    async def bonds(self) -> None:
        reply = await self.service.bonds(grpc_buffer.INSTRUMENT_STATUS_BASE)
        for i, bond in enumerate(reply.instruments):
            if i >= self.bonds_limit:
                break
            self._print(f"bond {i} = {bond.figi}")

    @step_logger("BondBy")
    async def bond(self) -> None:
        reply = await self.service.bond_by_figi(self.bond_figi)
        self._print(
            f"bond by figi = {text_format.MessageToString(reply.instrument, as_one_line=True)}"
        )

    @step_logger("GetAccruedInterests")
    async def accrued_interests(self) -> None:
        _now = self.now()
        reply = await self.service.get_accrued_interests(
            self.share_uid, _now - timedelta(hours=72), _now
        )
        for interest in reply.accrued_interests:
            self._print(f"interest = {quotation_to_float(interest.value)}")

    @step_logger("GetBondCoupons")
    async def bond_coupons(self) -> None:
        _now = self.now()
        reply = await self.service.get_bond_coupons(
            self.share_uid, _now, _now + timedelta(hours=10000)
        )
        for coupon in reply.events:
            self._print(f"coupon date = {from_timestamp(coupon.coupon_date)}")

    @step_logger("GetDividends", header=True)
    async def dividends(self) -> None:
        _now = self.now()
        reply = await self.service.get_dividends(
            self.share_uid, _now - timedelta(hours=1000), _now
        )
        for i, dividend in enumerate(reply.dividends):
            self._print(
                f"dividend {i}, declared date = {from_timestamp(dividend.declared_date)}"
            )
