"""Django settings for the uploads service.

Settings are split into components and assembled with
django-split-settings. Values come from the environment or
``config/.env`` through python-decouple.
"""

from split_settings.tools import include

include(
    'components/common.py',
    'components/logging.py',
    'components/storages.py',
    'components/ingestion.py',
)
