# tests/conftest.py
import logging
import os
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import grpc
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from invest_instruments.config import Config
from invest_instruments.common.utils import to_timestamp
from invest_instruments.proto import instruments_pb2 as grpc_buffer
from invest_instruments.proto import instruments_pb2_grpc as grpc_services

TCSG_UID = "6afa6f80-03a7-4d83-9cf0-c19d7d021f76"
TCSG_FIGI = "BBG00QPYJ5H0"
BOND_FIGI = "BBG00QXGFHS6"


def _ts(*args):
    return to_timestamp(datetime(*args, tzinfo=timezone.utc))


SHARES = [
    grpc_buffer.Share(
        figi=TCSG_FIGI,
        ticker="TCSG",
        class_code="TQBR",
        currency="rub",
        name="TCS Group",
        uid=TCSG_UID,
        ipo_date=_ts(2013, 10, 25),
    ),
    grpc_buffer.Share(
        figi="BBG004730N88",
        ticker="SBER",
        class_code="TQBR",
        currency="rub",
        name="Сбер Банк",
        uid="e6123145-9665-43e0-8413-cd61b8aa9b13",
        ipo_date=_ts(2007, 7, 11),
    ),
]

BONDS = [
    grpc_buffer.Bond(
        figi=BOND_FIGI if i == 0 else f"BBG0000000{i:02d}",
        ticker=f"RU000A{i:06d}",
        class_code="TQCB",
        currency="rub",
        name=f"Bond {i}",
        uid=f"bond-uid-{i}",
    )
    for i in range(10)
]

INSTRUMENTS = [
    grpc_buffer.InstrumentShort(
        figi=TCSG_FIGI,
        ticker="TCSG",
        name="TCS Group",
        uid=TCSG_UID,
        instrument_kind=grpc_buffer.INSTRUMENT_TYPE_SHARE,
    ),
    grpc_buffer.InstrumentShort(
        figi="BBG00Y91R9T3",
        ticker="TCSG@GS",
        name="Тинькофф Банк",
        uid="9e7d7a1c-1d4d-4bc5-8c0d-8b39f4f0e0a1",
        instrument_kind=grpc_buffer.INSTRUMENT_TYPE_SHARE,
    ),
    grpc_buffer.InstrumentShort(
        figi="TCS00A105EX7",
        ticker="RU000A105EX7",
        name="Тинькофф Облигации",
        uid="00486cd8-1ad7-4ff4-9af4-2ab1b9a4ac23",
        instrument_kind=grpc_buffer.INSTRUMENT_TYPE_BOND,
    ),
]


def _lookup(instruments, request):
    for instrument in instruments:
        if request.id_type == grpc_buffer.INSTRUMENT_ID_TYPE_UID:
            if instrument.uid == request.id:
                return instrument
        elif request.id_type == grpc_buffer.INSTRUMENT_ID_TYPE_FIGI:
            if instrument.figi == request.id:
                return instrument
        elif request.id_type == grpc_buffer.INSTRUMENT_ID_TYPE_TICKER:
            if instrument.ticker == request.id and instrument.class_code == request.class_code:
                return instrument
    return None


class FakeInstrumentsServicer(grpc_services.InstrumentsServiceServicer):
    """In-process instruments service, records every call and can be told to fail methods."""

    def __init__(self):
        self.calls = []
        self.failures = {}

    def fail(self, method, code=grpc.StatusCode.INTERNAL, details="internal error", message=None):
        trailing = (("message", message),) if message is not None else ()
        self.failures[method] = (code, details, trailing)

    def methods(self):
        return [method for method, _, _ in self.calls]

    async def _enter(self, method, request, context):
        self.calls.append((method, request, dict(context.invocation_metadata())))
        await context.send_initial_metadata((("x-tracking-id", f"tracking-{len(self.calls)}"),))
        if method in self.failures:
            code, details, trailing = self.failures[method]
            await context.abort(code, details, trailing_metadata=trailing)

    async def _not_found(self, context, request):
        await context.abort(
            grpc.StatusCode.NOT_FOUND,
            f"instrument '{request.id}' not found",
            trailing_metadata=(("message", "instrument not found"),),
        )

    async def FindInstrument(self, request, context):
        await self._enter("FindInstrument", request, context)
        query = request.query.lower()
        return grpc_buffer.FindInstrumentResponse(
            instruments=[
                instrument
                for instrument in INSTRUMENTS
                if query in instrument.name.lower() or query in instrument.ticker.lower()
            ]
        )

    async def TradingSchedules(self, request, context):
        await self._enter("TradingSchedules", request, context)
        start = getattr(request, "from")
        return grpc_buffer.TradingSchedulesResponse(
            exchanges=[
                grpc_buffer.TradingSchedule(
                    exchange=request.exchange,
                    days=[
                        grpc_buffer.TradingDay(date=start, is_trading_day=True),
                        grpc_buffer.TradingDay(date=request.to, is_trading_day=False),
                    ],
                )
            ]
        )

    async def ShareBy(self, request, context):
        await self._enter("ShareBy", request, context)
        share = _lookup(SHARES, request)
        if share is None:
            await self._not_found(context, request)
        return grpc_buffer.ShareResponse(instrument=share)

    async def Shares(self, request, context):
        await self._enter("Shares", request, context)
        return grpc_buffer.SharesResponse(instruments=SHARES)

    async def BondBy(self, request, context):
        await self._enter("BondBy", request, context)
        bond = _lookup(BONDS, request)
        if bond is None:
            await self._not_found(context, request)
        return grpc_buffer.BondResponse(instrument=bond)

    async def Bonds(self, request, context):
        await self._enter("Bonds", request, context)
        return grpc_buffer.BondsResponse(instruments=BONDS)

    async def GetAccruedInterests(self, request, context):
        await self._enter("GetAccruedInterests", request, context)
        return grpc_buffer.GetAccruedInterestsResponse(
            accrued_interests=[
                grpc_buffer.AccruedInterest(
                    date=request.to, value=grpc_buffer.Quotation(units=12, nano=340000000)
                ),
                grpc_buffer.AccruedInterest(
                    date=request.to, value=grpc_buffer.Quotation(units=0, nano=500000000)
                ),
            ]
        )

    async def GetBondCoupons(self, request, context):
        await self._enter("GetBondCoupons", request, context)
        return grpc_buffer.GetBondCouponsResponse(
            events=[
                grpc_buffer.Coupon(figi=BOND_FIGI, coupon_date=_ts(2030, 1, 15), coupon_number=1),
                grpc_buffer.Coupon(figi=BOND_FIGI, coupon_date=_ts(2030, 7, 15), coupon_number=2),
            ]
        )

    async def GetDividends(self, request, context):
        await self._enter("GetDividends", request, context)
        return grpc_buffer.GetDividendsResponse(
            dividends=[grpc_buffer.Dividend(declared_date=_ts(2024, 5, 20))]
        )


@asynccontextmanager
async def serve_instruments(servicer):
    server = grpc.aio.server()
    grpc_services.add_InstrumentsServiceServicer_to_server(servicer, server)
    port = server.add_insecure_port("127.0.0.1:0")
    await server.start()
    try:
        yield Config(
            token="test-token",
            endpoint=f"127.0.0.1:{port}",
            app_name="invest-instruments-tests",
            insecure=True,
            connect_timeout=5,
        )
    finally:
        await server.stop(None)


@pytest.fixture
def servicer():
    return FakeInstrumentsServicer()


@pytest.fixture
def instruments_server(servicer):
    """Returns an async context manager serving the fake service, yields a matching client config."""
    return lambda: serve_instruments(servicer)


@pytest.fixture(autouse=True)
def restore_main_logger():
    """The entry point configures the shared '__main__' logger, undo it after every test."""
    _logger = logging.getLogger("__main__")
    handlers, level, propagate, disabled = (
        list(_logger.handlers),
        _logger.level,
        _logger.propagate,
        _logger.disabled,
    )
    yield
    _logger.handlers = handlers
    _logger.setLevel(level)
    _logger.propagate = propagate
    _logger.disabled = disabled


@pytest.fixture
def main_log(caplog):
    """caplog bound to the shared '__main__' logger."""
    _logger = logging.getLogger("__main__")
    _logger.addHandler(caplog.handler)
    _logger.propagate = False
    _logger.disabled = False
    _logger.setLevel(logging.INFO)
    yield caplog
    _logger.removeHandler(caplog.handler)
