from webm_dash_live.main import app, run  # noqa: F401

# Run the DASH live server
if __name__ == "__main__":
    run()
