# Config module
from cotton_cloud.config.settings import get_settings, reload_settings, Settings, OperationTimeouts
