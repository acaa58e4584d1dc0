import os

from groupbuy import create_app
from groupbuy.bootstrap import init_db

app = create_app()


def start_app():
    with app.app_context():
        init_db(app.config.get('ADMIN_EMAIL'), app.config.get('ADMIN_PASSWORD'))
        print("✅ [System] database tables ready")


if __name__ == "__main__":
    start_app()
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port)
