import os
import warnings

# Ignore warnings from solitude.shared
warnings.filterwarnings("ignore", category=DeprecationWarning, module="solitude.shared.*")

# Set test environment variables
os.environ.update({"DEBUG": "false", "LOGFIRE_ENABLE": "false"})

from tests.fixtures.presence_fixtures import *  # noqa: E402, F403
