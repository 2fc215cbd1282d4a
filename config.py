import os
from dotenv import load_dotenv

load_dotenv(dotenv_path=".env", override=False)

API_KEY = os.getenv("BITGET_API_KEY", "")
API_SECRET = os.getenv("BITGET_SECRET_KEY", "")
API_PASSWORD = os.getenv("BITGET_PASSWORD", "")
LOG_FILE = os.getenv("LOG_FILE", "tradingbot.log")
