import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Backing store for the singleton game state row (required)
    SQLALCHEMY_DATABASE_URI = os.environ.get('GAME_STORE_URL')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Key that unlocks the admin view and direct state writes (required)
    ACCESS_KEY = os.environ.get('GAME_STORE_KEY')
    # Countdown refresh cadence for mounted views (seconds)
    TICK_INTERVAL_SEC = float(os.environ.get('TICK_INTERVAL_SEC', '1'))
    # Prefilled value of the admin duration inputs (minutes)
    DEFAULT_DURATION_MIN = int(os.environ.get('DEFAULT_DURATION_MIN', '10'))
    # Unset: Socket.IO only accepts the page's own origin
    CORS_ORIGINS = [
        o.strip() for o in os.environ['CORS_ORIGINS'].split(',') if o.strip()
    ] if os.environ.get('CORS_ORIGINS') else None
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

# Settings that must be supplied by the environment before the app can start
REQUIRED_SETTINGS = ('SQLALCHEMY_DATABASE_URI', 'ACCESS_KEY')
