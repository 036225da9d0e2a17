from invest_instruments.client.client import Client, create_channel, new_client
from invest_instruments.client.instruments import InstrumentsServiceClient

__all__ = ["Client", "InstrumentsServiceClient", "create_channel", "new_client"]
