import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///asocijacije.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Turn timers (seconds). A guess limit of 0 means the guesser has unlimited time.
    GUESS_DURATION_SEC = int(os.environ.get('GUESS_DURATION_SEC', '30'))
    ROUND_OVER_DURATION_SEC = int(os.environ.get('ROUND_OVER_DURATION_SEC', '3'))
    DISCONNECT_GRACE_SEC = int(os.environ.get('DISCONNECT_GRACE_SEC', '15'))
    # Rooms with nobody connected are evicted from memory after this delay
    EMPTY_ROOM_TTL_SEC = int(os.environ.get('EMPTY_ROOM_TTL_SEC', '300'))
    DEFAULT_WIN_SCORE = int(os.environ.get('DEFAULT_WIN_SCORE', '10'))
    COUNTDOWN_MIN_SEC = int(os.environ.get('COUNTDOWN_MIN_SEC', '5'))
    COUNTDOWN_MAX_SEC = int(os.environ.get('COUNTDOWN_MAX_SEC', '300'))
    # Quiz mini-game
    QUIZ_QUESTION_SEC = int(os.environ.get('QUIZ_QUESTION_SEC', '20'))
    QUIZ_PAUSE_SEC = int(os.environ.get('QUIZ_PAUSE_SEC', '3'))
    CHAT_HISTORY_LIMIT = int(os.environ.get('CHAT_HISTORY_LIMIT', '200'))
    # Single account allowed to fill seats with bots and act as other seats. Empty disables.
    TEST_MODE_USERNAME = os.environ.get('TEST_MODE_USERNAME', '')
