import warnings

# Ignore deprecation noise from third-party packages
warnings.filterwarnings("ignore", category=DeprecationWarning)

# Import stream fixtures so they are available to all tests
from tests.fixtures.stream_fixtures import *  # noqa: E402, F403
