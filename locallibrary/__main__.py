import uvicorn

from locallibrary import config


if __name__ == "__main__":
    uvicorn.run("locallibrary.main:app", host=config.server_host(), port=config.server_port())
