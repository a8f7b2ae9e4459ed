# Camera fleet dashboard: database models
# Import all models here for SQLAlchemy discovery

from camfleet.models.division import Division          # noqa
from camfleet.models.device import Device              # noqa
from camfleet.models.channel import Channel            # noqa
from camfleet.models.channel_log import ChannelLog     # noqa
from camfleet.models.layout import Layout              # noqa
