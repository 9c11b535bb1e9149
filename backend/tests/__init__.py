# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from knockout.models.event import Event  # noqa: F401
from knockout.models.match import Match  # noqa: F401
from knockout.models.player import Player  # noqa: F401
