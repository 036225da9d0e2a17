#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from typing import Optional
import asyncio
import logging

import grpc

from invest_instruments.config import Config
from invest_instruments.common.errors import InvestError
from invest_instruments.common.utils import MAX_GRPC_MESSAGE_LENGTH
from invest_instruments.client.instruments import InstrumentsServiceClient


def create_channel(config: Config) -> grpc.aio.Channel:
    options = [
        ("grpc.max_send_message_length", MAX_GRPC_MESSAGE_LENGTH),
        ("grpc.max_receive_message_length", MAX_GRPC_MESSAGE_LENGTH),
        ("grpc.primary_user_agent", config.app_name),
    ]

    if config.insecure:
        return grpc.aio.insecure_channel(config.endpoint, options=options)

    return grpc.aio.secure_channel(
        config.endpoint, grpc.ssl_channel_credentials(), options=options
    )


class Client:
    """Owns the channel to the Invest API, service clients share it"""

    __name__ = "Invest-Client"

    def __init__(
        self,
        config: Config,
        channel: grpc.aio.Channel,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.listen_addr = config.endpoint
        self.channel = channel
        self.logger = logger if logger is not None else logging.getLogger("__main__")

        self._metadata = (
            ("authorization", f"Bearer {config.token}"),
            ("x-app-name", config.app_name),
        )
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def instruments_service(self) -> InstrumentsServiceClient:
        if self._closed:
            raise InvestError(f"{self.__name__} ({self.listen_addr}): Client is closed")

        return InstrumentsServiceClient(
            listen_addr=self.listen_addr,
            channel=self.channel,
            metadata=self._metadata,
        )

    async def stop(self) -> None:
        if self._closed:
            self.logger.debug(
                f"{self.__name__} ({self.listen_addr}): Connection already closed"
            )
            return

        # Only marked closed once the channel has finished closing, an
        # interrupted close can be retried
        await self.channel.close()
        self._closed = True
        self.logger.debug(f"{self.__name__} ({self.listen_addr}): Connection closed")

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, *args) -> None:
        await self.stop()


async def new_client(
    config: Config,
    logger: Optional[logging.Logger] = None,
    channel: Optional[grpc.aio.Channel] = None,
) -> Client:
    """Opens a channel to the configured endpoint and waits until it is ready"""
    _logger = logger if logger is not None else logging.getLogger("__main__")
    _channel = channel if channel is not None else create_channel(config)

    _logger.info(
        f"Invest-Client ({config.endpoint}): Waiting for endpoint to wake up ..."
    )
    try:
        await asyncio.wait_for(
            _channel.channel_ready(), timeout=config.connect_timeout
        )
    except asyncio.TimeoutError as exc:
        await _channel.close()
        raise InvestError(
            f"Invest-Client ({config.endpoint}): Endpoint not ready after {config.connect_timeout}s",
            code=grpc.StatusCode.UNAVAILABLE,
        ) from exc
    except asyncio.CancelledError:
        await _channel.close()
        raise

    _logger.info(f"Invest-Client ({config.endpoint}): Connected")
    return Client(config=config, channel=_channel, logger=_logger)
