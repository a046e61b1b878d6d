# main.py
import uvicorn

from vidtube.main import app

# You can run this file using: python main.py, or uvicorn vidtube.main:app --reload
if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
