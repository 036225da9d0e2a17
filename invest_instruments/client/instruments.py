#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from typing import Optional, Sequence, Tuple
from datetime import datetime
import logging

import grpc
from invest_instruments.proto import instruments_pb2 as grpc_buffer
from invest_instruments.proto import instruments_pb2_grpc as grpc_services

from invest_instruments.common.errors import InvestError, merge_metadata
from invest_instruments.common.utils import to_timestamp

logger = logging.getLogger("__main__")


class InstrumentsServiceClient:
    """Read-only facade over the instruments service, every method issues exactly one unary call"""

    __name__ = "Instruments-Client"

    def __init__(
        self,
        listen_addr: str,
        channel: grpc.aio.Channel,
        metadata: Sequence[Tuple[str, str]] = (),
    ):
        self.listen_addr = listen_addr
        self.channel = channel
        self.metadata = tuple(metadata)

        self.stub = grpc_services.InstrumentsServiceStub(self.channel)

    async def _invoke(self, method: str, request):
        call = getattr(self.stub, method)(request, metadata=self.metadata)
        try:
            reply = await call
        except grpc.aio.AioRpcError as exc:
            raise InvestError.from_rpc_error(method, exc) from exc

        header = merge_metadata(await call.initial_metadata())
        logger.debug(
            f"{self.__name__} ({self.listen_addr}): <{request.__class__.__name__}> Tracking id: '{header.get('x-tracking-id')}'"
        )
        return reply

    async def find_instrument(
        self,
        query: str,
        instrument_kind: Optional[int] = None,
        api_trade_available: Optional[bool] = None,
    ) -> grpc_buffer.FindInstrumentResponse:
        request = grpc_buffer.FindInstrumentRequest(query=query)
        if instrument_kind is not None:
            request.instrument_kind = instrument_kind
        if api_trade_available is not None:
            request.api_trade_available_flag = api_trade_available

        return await self._invoke("FindInstrument", request)

    async def trading_schedules(
        self, exchange: str, from_: datetime, to: datetime
    ) -> grpc_buffer.TradingSchedulesResponse:
        return await self._invoke(
            "TradingSchedules",
            grpc_buffer.TradingSchedulesRequest(
                exchange=exchange,
                **{"from": to_timestamp(from_), "to": to_timestamp(to)},
            ),
        )

    def _instrument_request(
        self, id_type: int, id: str, class_code: Optional[str] = None
    ) -> grpc_buffer.InstrumentRequest:
        if not id:
            raise ValueError("Instrument identifier must not be empty")

        request = grpc_buffer.InstrumentRequest(id_type=id_type, id=id)
        if class_code:
            request.class_code = class_code
        elif id_type == grpc_buffer.INSTRUMENT_ID_TYPE_TICKER:
            raise ValueError(f"Class code is required to look up ticker: '{id}'")

        return request

    async def share_by(
        self, id_type: int, id: str, class_code: Optional[str] = None
    ) -> grpc_buffer.ShareResponse:
        return await self._invoke(
            "ShareBy", self._instrument_request(id_type, id, class_code)
        )

    async def share_by_uid(self, uid: str) -> grpc_buffer.ShareResponse:
        return await self.share_by(grpc_buffer.INSTRUMENT_ID_TYPE_UID, uid)

    async def share_by_figi(self, figi: str) -> grpc_buffer.ShareResponse:
        return await self.share_by(grpc_buffer.INSTRUMENT_ID_TYPE_FIGI, figi)

    async def share_by_ticker(
        self, ticker: str, class_code: str
    ) -> grpc_buffer.ShareResponse:
        return await self.share_by(
            grpc_buffer.INSTRUMENT_ID_TYPE_TICKER, ticker, class_code
        )

    async def shares(
        self, status: int = grpc_buffer.INSTRUMENT_STATUS_BASE
    ) -> grpc_buffer.SharesResponse:
        return await self._invoke(
            "Shares", grpc_buffer.InstrumentsRequest(instrument_status=status)
        )

    async def bond_by(
        self, id_type: int, id: str, class_code: Optional[str] = None
    ) -> grpc_buffer.BondResponse:
        return await self._invoke(
            "BondBy", self._instrument_request(id_type, id, class_code)
        )

    async def bond_by_uid(self, uid: str) -> grpc_buffer.BondResponse:
        return await self.bond_by(grpc_buffer.INSTRUMENT_ID_TYPE_UID, uid)

    async def bond_by_figi(self, figi: str) -> grpc_buffer.BondResponse:
        return await self.bond_by(grpc_buffer.INSTRUMENT_ID_TYPE_FIGI, figi)

    async def bond_by_ticker(
        self, ticker: str, class_code: str
    ) -> grpc_buffer.BondResponse:
        return await self.bond_by(
            grpc_buffer.INSTRUMENT_ID_TYPE_TICKER, ticker, class_code
        )

    async def bonds(
        self, status: int = grpc_buffer.INSTRUMENT_STATUS_BASE
    ) -> grpc_buffer.BondsResponse:
        return await self._invoke(
            "Bonds", grpc_buffer.InstrumentsRequest(instrument_status=status)
        )

    # Event queries take either a figi or an instrument uid as 'instrument_id'
    async def get_accrued_interests(
        self, instrument_id: str, from_: datetime, to: datetime
    ) -> grpc_buffer.GetAccruedInterestsResponse:
        return await self._invoke(
            "GetAccruedInterests",
            grpc_buffer.GetAccruedInterestsRequest(
                instrument_id=instrument_id,
                **{"from": to_timestamp(from_), "to": to_timestamp(to)},
            ),
        )

    async def get_bond_coupons(
        self, instrument_id: str, from_: datetime, to: datetime
    ) -> grpc_buffer.GetBondCouponsResponse:
        return await self._invoke(
            "GetBondCoupons",
            grpc_buffer.GetBondCouponsRequest(
                instrument_id=instrument_id,
                **{"from": to_timestamp(from_), "to": to_timestamp(to)},
            ),
        )

    async def get_dividends(
        self, instrument_id: str, from_: datetime, to: datetime
    ) -> grpc_buffer.GetDividendsResponse:
        return await self._invoke(
            "GetDividends",
            grpc_buffer.GetDividendsRequest(
                instrument_id=instrument_id,
                **{"from": to_timestamp(from_), "to": to_timestamp(to)},
            ),
        )
