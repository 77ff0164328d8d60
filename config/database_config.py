from pymongo import ASCENDING, DESCENDING, MongoClient

from config.settings import Settings

client = MongoClient(Settings.MONGODB_URI)

db = client[Settings.MONGODB_DB]


def ensure_indexes(database=db) -> None:
    """Create the indexes the ordered reads rely on"""
    database["chats"].create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    database["messages"].create_index(
        [("user_id", ASCENDING), ("chat_id", ASCENDING), ("created_at", ASCENDING), ("seq", ASCENDING)]
    )
    database["prompts"].create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
