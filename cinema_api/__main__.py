from . import create_app
from .config import API_DEBUG, API_HOST, API_PORT

app = create_app()

if __name__ == "__main__":
    app.run(host=API_HOST, port=API_PORT, debug=API_DEBUG)
