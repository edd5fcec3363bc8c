if __name__ == "__main__":
    import os

    os.environ.setdefault("FLASK_ENV", "dev")
    from issuance import create_app

    app = create_app()
    # `flask --app issuance init-db` and `flask --app issuance seed-demo` prepare the database
    app.run(debug=app.config["DEBUG"])
