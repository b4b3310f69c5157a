import os
import logging
from datetime import date
from flask import Flask, g, jsonify, request, session
from flask_session import Session
from flask_login import LoginManager, login_user, login_required, logout_user, current_user
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError
import redis

import bookshelf
from auth import AuthError, normalize_email, validate_credentials
from bookshelf import BookshelfError, NotFound
from db.database import configure_database, get_db, init_database
from db.models import User
from game_logic import (
    GuessRejected, WordleGame, WORDS_FILE, keyboard_rows, load_words, random_word, todays_word,
    todays_word_index,
)
from rating import InvalidRating

load_dotenv()

logger = logging.getLogger(__name__)


# Flask app setup
def create_app():
    """Factory function to create and configure Flask app."""
    app = Flask(__name__)
    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-change-in-production")
    app.config["DATABASE_URL"] = os.environ.get("DATABASE_URL", "sqlite:///bookshelf.db")
    app.config["WORDLE_WORD_LENGTH"] = int(os.environ.get("WORDLE_WORD_LENGTH", 5))
    app.config["WORDLE_MAX_GUESSES"] = int(os.environ.get("WORDLE_MAX_GUESSES", 6))
    app.config["WORDLE_WORDS_FILE"] = os.environ.get("WORDLE_WORDS_FILE", WORDS_FILE)

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Redis-backed server-side sessions; an empty SESSION_TYPE keeps Flask's signed cookies
    session_type = os.environ.get("SESSION_TYPE", "redis")
    if session_type:
        app.config["SESSION_TYPE"] = session_type
        app.config["SESSION_PERMANENT"] = False
        if session_type == "redis":
            redis_url = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
            app.config["SESSION_REDIS"] = redis.from_url(redis_url)
        Session(app)

    configure_database(app.config["DATABASE_URL"])
    init_database()

    app.config["WORDLE_WORDS"] = load_words(app.config["WORDLE_WORDS_FILE"], app.config["WORDLE_WORD_LENGTH"])
    if not app.config["WORDLE_WORDS"]:
        raise RuntimeError(
            f"No {app.config['WORDLE_WORD_LENGTH']}-letter words in {app.config['WORDLE_WORDS_FILE']}"
        )
    return app

app = create_app()

# Flask-Login setup
login_manager = LoginManager()
login_manager.init_app(app)


def db_session():
    """Database session for the current request, closed on teardown."""
    if "db" not in g:
        g.db_gen = get_db()
        g.db = next(g.db_gen)
    return g.db


@app.teardown_appcontext
def close_db_session(exc):
    db_gen = g.pop("db_gen", None)
    g.pop("db", None)
    if db_gen is not None:
        next(db_gen, None)


@login_manager.user_loader
def load_user(user_id):
    """Load user by ID for Flask-Login."""
    return db_session().get(User, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "You need to be signed in"}), 401


# --------------------
# Error handlers
# --------------------
@app.errorhandler(NotFound)
def handle_not_found(error):
    return jsonify({"error": str(error)}), 404


@app.errorhandler(AuthError)
@app.errorhandler(BookshelfError)
@app.errorhandler(GuessRejected)
@app.errorhandler(InvalidRating)
def handle_validation_error(error):
    return jsonify({"error": str(error)}), 400


@app.errorhandler(SQLAlchemyError)
def handle_database_error(error):
    logger.exception("Database error")
    if "db" in g:
        g.db.rollback()
    return jsonify({"error": "Database error"}), 500


# --------------------
# Auth routes
# --------------------
@app.route("/register", methods=["POST"])
def register():
    """Create new user account."""
    data = request.get_json(silent=True) or {}
    email = validate_credentials(data.get("email"), data.get("password", ""))

    db = db_session()
    if db.query(User).filter(User.email == email).first():
        return jsonify({"error": "Email already registered"}), 400

    user = User(email=email)
    user.set_password(data["password"])
    db.add(user)
    db.flush()
    bookshelf.get_or_create_profile(db, user)
    logger.info("Registered user %s", user.id)
    return jsonify({"success": True, "message": "Account created successfully", "user_id": user.id})


@app.route("/login", methods=["POST"])
def login():
    """Authenticate user and create session."""
    data = request.get_json(silent=True) or {}
    email = normalize_email(data.get("email"))
    password = data.get("password", "")

    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400

    logger.info("Login attempt for %s", email)
    db = db_session()
    user = db.query(User).filter(User.email == email).first()

    if user and user.check_password(password):
        login_user(user)
        bookshelf.get_or_create_profile(db, user)
        return jsonify({
            "success": True,
            "user_id": user.id,
            "email": user.email
        })

    logger.warning("Failed login for %s", email)
    return jsonify({"error": "Invalid email or password"}), 401


@app.route("/logout")
@login_required
def logout():
    """End user session."""
    logout_user()
    return jsonify({"success": True, "message": "Signed out"})


@app.route("/api/me")
@login_required
def me():
    return jsonify({"user_id": current_user.id, "email": current_user.email})


# --------------------
# Wordle
# --------------------
def _new_game(mode: str) -> dict:
    words = app.config["WORDLE_WORDS"]
    secret = random_word(words) if mode == "random" else todays_word(words)
    game = WordleGame(secret_word=secret, max_guesses=app.config["WORDLE_MAX_GUESSES"])
    state = {"mode": mode, "day": todays_word_index(), "game": game.to_dict()}
    session["wordle"] = state
    return state


def _current_game():
    # A daily game from an earlier day is replaced by today's puzzle
    state = session.get("wordle")
    if not state or (state["mode"] == "daily" and state["day"] != todays_word_index()):
        state = _new_game("daily")
    return state, WordleGame.from_dict(state["game"])


def _save_game(state: dict, game: WordleGame):
    state["game"] = game.to_dict()
    session["wordle"] = state


def _game_payload(state: dict, game: WordleGame) -> dict:
    return {
        "mode": state["mode"],
        "word_length": game.word_length,
        "max_guesses": game.max_guesses,
        "remaining_guesses": game.remaining_guesses,
        "status": game.status,
        "guesses": [result.to_dict() for result in game.history()],
        "eliminated": game.eliminated(),
        "keyboard": keyboard_rows(game.guesses, game.secret_word),
        "share": game.share_grid(),
        "target": game.secret_word if game.is_over else None,
    }


def _record_result(game: WordleGame):
    """Update the signed-in player's win/loss counters."""
    if not current_user.is_authenticated:
        return None
    db = db_session()
    user = db.get(User, current_user.id)
    if game.status == "won":
        user.wins += 1
        result = "win"
    else:
        user.losses += 1
        result = "loss"
    db.commit()
    logger.info("User %s finished a game: %s after %d guesses", user.id, result, len(game.guesses))
    return result


@app.route("/api/wordle/new-game", methods=["POST"])
def new_game():
    """Start a daily or practice game."""
    data = request.get_json(silent=True) or {}
    mode = data.get("mode", "daily")
    if mode not in ("daily", "random"):
        return jsonify({"error": "Mode must be 'daily' or 'random'"}), 400

    state = _new_game(mode)
    game = WordleGame.from_dict(state["game"])
    return jsonify({"success": True, "message": "New game started", **_game_payload(state, game)})


@app.route("/api/wordle/state")
def wordle_state():
    state, game = _current_game()
    return jsonify(_game_payload(state, game))


@app.route("/api/wordle/guess", methods=["POST"])
def make_guess():
    """Evaluate a guess against the current secret word."""
    data = request.get_json(silent=True) or {}
    state, game = _current_game()

    result = game.submit(data.get("guess", ""))
    _save_game(state, game)

    outcome = _record_result(game) if game.is_over else None
    return jsonify({
        "success": True,
        "feedback": result.to_dict()["feedback"],
        "solved": result.solved,
        "result": outcome,
        **_game_payload(state, game),
    })


@app.route("/api/leaderboard")
def leaderboard():
    """Get top players by wins."""
    db = db_session()
    users = (
        db.query(User)
        .filter((User.wins + User.losses) >= 1)
        .order_by(User.wins.desc(), User.losses.asc(), User.email.asc())
        .limit(10)
        .all()
    )
    return jsonify({"success": True, "leaderboard": [{
        "rank": i,
        "name": (u.profile and u.profile.fullname) or bookshelf.format_user_heading(u.id),
        "wins": u.wins,
        "losses": u.losses,
    } for i, u in enumerate(users, start=1)]})


# --------------------
# Bookshelf
# --------------------
@app.route("/api/bookshelf/books")
@login_required
def my_books():
    """List the signed-in reader's shelf."""
    entries = bookshelf.list_shelf(db_session(), current_user.id)
    return jsonify({"entries": [entry.to_dict() for entry in entries]})


@app.route("/api/bookshelf/books", methods=["POST"])
@login_required
def add_book():
    """Add an existing or new book to the shelf."""
    data = request.get_json(silent=True) or {}
    entry = bookshelf.add_to_shelf(
        db_session(),
        current_user.id,
        title=data.get("title"),
        book_id=data.get("book_id"),
        author=data.get("author"),
        genre=data.get("genre"),
        year=data.get("year"),
        image_url=data.get("image_url"),
        rating=data.get("rating"),
        owned=bool(data.get("owned")),
        read=bool(data.get("read")),
    )
    return jsonify({"success": True, "message": "Book added to your shelf", "entry": entry.to_dict()}), 201


@app.route("/api/bookshelf/books/<int:entry_id>", methods=["PATCH"])
@login_required
def update_book(entry_id):
    """Update the rating, ownership or read status of a shelf entry; absent fields are kept."""
    data = request.get_json(silent=True) or {}
    changes = {key: data[key] for key in ("rating", "owned", "read") if key in data}
    entry = bookshelf.update_entry(db_session(), current_user.id, entry_id, **changes)
    return jsonify({"success": True, "message": "Book details updated", "entry": entry.to_dict()})


@app.route("/api/bookshelf/books/<int:entry_id>", methods=["DELETE"])
@login_required
def remove_book(entry_id):
    bookshelf.remove_entry(db_session(), current_user.id, entry_id)
    return jsonify({"success": True, "message": "Book removed from your shelf"})


@app.route("/api/bookshelf/search")
def search_books():
    """Search the catalogue by title."""
    books = bookshelf.search_books(db_session(), request.args.get("q", ""))
    return jsonify({"results": [book.to_dict() for book in books]})


@app.route("/api/bookshelf/users/<int:user_id>")
def user_shelf(user_id):
    """Public view of another reader's shelf."""
    entries = bookshelf.list_shelf(db_session(), user_id)
    return jsonify({
        "user_id": user_id,
        "heading": bookshelf.format_user_heading(user_id),
        "entries": [entry.to_dict() for entry in entries],
    })


@app.route("/api/bookshelf/borrow")
def borrow():
    """Books other readers have recently shelved."""
    entries = bookshelf.borrow_listing(db_session())
    return jsonify({"entries": [entry.to_dict() for entry in entries]})


@app.route("/api/bookshelf/book/<int:book_id>")
def book_detail(book_id):
    """A book and the readers it can be borrowed from."""
    return jsonify(bookshelf.book_detail(db_session(), book_id).to_dict())


@app.route("/api/bookshelf/profile")
@login_required
def get_profile():
    profile = bookshelf.get_or_create_profile(db_session(), current_user)
    return jsonify(profile.to_dict())


@app.route("/api/bookshelf/profile", methods=["PUT"])
@login_required
def save_profile():
    data = request.get_json(silent=True) or {}
    profile = bookshelf.update_profile(db_session(), current_user.id, data.get("fullname"))
    return jsonify({"success": True, "message": "Profile updated", "profile": profile.to_dict()})


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=os.environ.get("FLASK_DEBUG") == "1")
