#!/usr/bin/env python3
"""
Setup script for the chat API
This script helps set up the environment and dependencies
"""

import os
import subprocess
import sys

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, ROOT)


def create_env_file():
    """Create .env file with template values"""
    env_content = """# Chat API - Environment Variables
# Gemini: https://makersuite.google.com/app/apikey

GEMINI_API_KEY=your_gemini_api_key_here
DEFAULT_MODEL=gemini-1.5-flash
MONGODB_URI=mongodb://localhost:27017
MONGODB_DB=chat_app

# Signing key shared with the identity provider
SECRET_KEY=your_super_secret_key_here_change_in_production
ALGORITHM=HS256

# Where the composer sends completion requests
COMPLETION_URL=http://127.0.0.1:8000/api/ask-question
COMPLETION_TIMEOUT=60

# Message writes: retries and whether a failed write shows a notification
PERSIST_MAX_RETRIES=2
NOTIFY_ON_PERSIST_FAILURE=true

# Open tabs kept per user before the least recently used one is closed
MAX_TABS_PER_USER=8

LOG_LEVEL=INFO
"""
    env_path = os.path.join(ROOT, '.env')
    if not os.path.exists(env_path):
        with open(env_path, 'w') as f:
            f.write(env_content)
        print("Created .env file template")
        print("Please edit .env file with your actual keys")
        return False
    else:
        print(".env file already exists")
        return True


def install_dependencies():
    """Install the project in editable mode"""
    print("Installing dependencies...")
    try:
        subprocess.run([sys.executable, "-m", "pip", "install", "-e", ROOT], check=True)
        print("Dependencies installed successfully")
        return True
    except subprocess.CalledProcessError as e:
        print(f"Failed to install dependencies: {e}")
        return False


def check_mongodb():
    """Check if MongoDB is running"""
    from pymongo import MongoClient
    from pymongo.errors import PyMongoError

    from config.settings import Settings

    try:
        client = MongoClient(Settings.MONGODB_URI, serverSelectionTimeoutMS=5000)
        client.server_info()
        print("MongoDB is running")
        return True
    except PyMongoError as e:
        print(f"MongoDB connection failed: {e}")
        print(f"Please make sure MongoDB is reachable at {Settings.MONGODB_URI}")
        return False


def print_dev_token(email: str):
    """Print a bearer token for local testing without the identity provider"""
    from utils.auth import create_access_token

    token = create_access_token({"sub": email, "email": email, "name": email.split("@")[0]})
    print(f"\nDevelopment token for {email}:\n{token}")


def main():
    """Main setup function"""
    print("Setting up the chat API...")
    print("=" * 50)

    env_exists = create_env_file()

    if not install_dependencies():
        return False

    mongodb_ok = check_mongodb()

    if len(sys.argv) > 1:
        print_dev_token(sys.argv[1])

    print("\n" + "=" * 50)
    if env_exists and mongodb_ok:
        print("Setup complete! You can now run the application.")
        print("\nNext steps:")
        print("1. Edit .env file with your keys")
        print("2. Run: uvicorn main:app --reload")
    else:
        print("Setup incomplete. Please fix the issues above.")

    return env_exists and mongodb_ok


if __name__ == "__main__":
    main()
