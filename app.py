import os

from buildcheck import create_app

# ---------- App init ----------
app = create_app()

if __name__ == '__main__':
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "3000")), debug=os.getenv("FLASK_DEBUG") == "1")
