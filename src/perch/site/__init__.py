"""The scaffold site served by ``perch run`` with no arguments.

A starting point to copy: one page, one partial, one stylesheet.
"""

from pathlib import Path

from perch.app import App
from perch.config import AppConfig
from perch.templating.returns import Page

SITE_DIR = Path(__file__).parent


def create_app(config: AppConfig | None = None) -> App:
    """Build the scaffold app.

    Without an explicit *config* the settings come from the environment
    (and ``.env``), with templates and assets defaulting to this package.
    """
    if config is None:
        config = AppConfig.from_env(
            template_dir=SITE_DIR / "templates",
            static_dir=SITE_DIR / "public",
        )
    app = App(config)

    @app.route("/")
    def index():
        return Page("base", "content", Title="Home")

    return app
