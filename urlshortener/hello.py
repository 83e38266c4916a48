"""Stand-alone "Hello, World!" demo. Shares nothing with the shortener."""
import os

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

HELLO_PORT = int(os.getenv("HELLO_PORT", 3000))

app = FastAPI(title="Hello")


@app.get("/", response_class=PlainTextResponse)
def hello():
    return "Hello, World!"


def run():
    uvicorn.run(app, host="0.0.0.0", port=HELLO_PORT)


if __name__ == "__main__":
    run()
