from textile_exports.cli import app

if __name__ == "__main__":
    app()
