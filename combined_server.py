"""
Combined server that runs both the admin web API and the Discord bot
Runs gunicorn in the main process, bot in a background subprocess
"""
import os
import sys
import threading
import subprocess
import time

from dotenv import load_dotenv


def run_database_setup():
    """Create the schema before either service starts"""
    print("📋 Setting up database schema...", flush=True)
    from core.database import create_db_engine
    from giveaway_system.database import setup_giveaway_database
    from market.database import setup_market_database

    engine = create_db_engine()
    if setup_giveaway_database(engine) and setup_market_database(engine):
        print("   ✅ Database schema is up to date", flush=True)
    else:
        print("   ⚠️ Schema setup reported errors, continuing startup anyway...", flush=True)
    engine.dispose()


def run_discord_bot():
    """Run Discord bot in background subprocess"""
    print("🤖 Starting Discord bot subprocess...", flush=True)
    process = subprocess.Popen(
        [sys.executable, "-u", "bot.py"],
        stdout=sys.stdout,
        stderr=sys.stderr
    )
    print(f"✅ Bot subprocess started (PID: {process.pid})", flush=True)
    process.wait()
    print(f"❌ Discord bot exited with code {process.returncode}", flush=True)


if __name__ == '__main__':
    load_dotenv()
    print("🚀 Starting combined admin API + Discord bot server...", flush=True)
    print(f"Python: {sys.version}", flush=True)

    run_database_setup()

    bot_thread = threading.Thread(target=run_discord_bot, daemon=True)
    bot_thread.start()

    print("⏳ Waiting for bot to initialize...", flush=True)
    time.sleep(3)

    port = int(os.getenv('PORT', 8000))
    print(f"📡 Starting admin API with Gunicorn on port {port}...", flush=True)

    os.execvp('gunicorn', [
        'gunicorn',
        '--bind', f'0.0.0.0:{port}',
        '--workers', '2',
        '--timeout', '120',
        '--access-logfile', '-',
        '--error-logfile', '-',
        'core.admin_server:create_app(configure_logging=True)'
    ])
