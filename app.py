"""Development entry point: `python app.py` (or `flask --app app run`)."""

import os

from src.music_school.music_school.main import create_app

app = create_app()

if __name__ == "__main__":
    app.run(host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "5000")), debug=app.config["DEBUG"])
