from __future__ import annotations

from brilho.application.container import build_container
from brilho.config import get_app_paths, get_log_level
from brilho.logging_config import setup_logging


def main() -> None:
    paths = get_app_paths()
    setup_logging(paths.logs_dir, level=get_log_level())

    container = build_container(paths.db_path, images_dir=paths.images_dir)

    # tkinter is only needed once the window opens
    from brilho.ui.app import App

    app = App(container, db_path=str(paths.db_path), logs_dir=str(paths.logs_dir))
    if app.current_user is not None:
        app.mainloop()


if __name__ == "__main__":
    main()
