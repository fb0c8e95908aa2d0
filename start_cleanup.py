"""
Abandoned Session Cleanup Entry Point
Runs the periodic sweep outside the API process
"""
import asyncio
import logging
from dotenv import load_dotenv
load_dotenv()

from pharmacy_feedback.db.postgres import create_tables
from pharmacy_feedback.feedback_sessions.cleanup import run_cleanup_loop

logging.basicConfig(level=logging.INFO)


async def main():
    await create_tables()
    await run_cleanup_loop()


if __name__ == "__main__":
    asyncio.run(main())
