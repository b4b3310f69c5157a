from datetime import date

import pytest

from game_logic import (
    GuessRejected, InvalidInput, LetterStatus, WordleGame, eliminated_letters, evaluate_guess,
    is_letter_usable, keyboard_rows, load_words, render_row, todays_word, todays_word_index,
)

C = LetterStatus.CORRECT
P = LetterStatus.PRESENT
A = LetterStatus.ABSENT


def test_evaluate_guess():
    assert evaluate_guess("ABCDE", "EDCBA") == [P, P, C, P, P]
    assert evaluate_guess("AABBB", "ABBBB") == [C, A, C, C, C]
    assert evaluate_guess("SLEEK", "STEEP") == [C, A, C, C, A]
    assert evaluate_guess("CRANE", "CRANE") == [C] * 5
    assert evaluate_guess("CRANE", "TOMBS") == [A] * 5


def test_evaluate_guess_repeated_letters():
    # ERASE has two Es, so both Es in the guess can be matched
    statuses = evaluate_guess("SPEED", "ERASE")
    assert statuses == [P, A, P, P, A]
    e_matches = [s for letter, s in zip("SPEED", statuses) if letter == "E" and s is not A]
    assert len(e_matches) <= "ERASE".count("E")

    # ABIDE has a single E: only the first E in the guess claims it
    assert evaluate_guess("SPEED", "ABIDE") == [A, A, P, A, P]

    # An exact match takes priority over an earlier displaced occurrence
    assert evaluate_guess("EEXXX", "YEYYY") == [A, C, A, A, A]


def test_evaluate_guess_identity_for_every_word():
    for word in ["APPLE", "LLAMA", "ZZZZZ", "RIVER", "ANCHOR"]:
        assert evaluate_guess(word, word) == [C] * len(word)


def test_evaluate_guess_ignores_case():
    expected = evaluate_guess("SPEED", "ERASE")
    assert evaluate_guess("speed", "ERASE") == expected
    assert evaluate_guess("SpEeD", "erase") == expected
    assert evaluate_guess("speed", "erase") == expected


def test_evaluate_guess_does_not_mutate_inputs():
    guess, secret = "speed", "erase"
    evaluate_guess(guess, secret)
    assert (guess, secret) == ("speed", "erase")


def test_evaluate_guess_keeps_length_of_expanding_letters():
    # "ß".upper() is "SS"; lengths are compared per character before normalizing
    assert evaluate_guess("ß", "x") == [A]
    assert evaluate_guess("straße", "STRAßE") == [C] * 6


def test_evaluate_guess_empty_words():
    assert evaluate_guess("", "") == []


@pytest.mark.parametrize("guess,secret", [("ABCD", "ABCDE"), ("ABCDEF", "ABCDE"), ("", "A"), ("A", "")])
def test_evaluate_guess_length_mismatch(guess, secret):
    with pytest.raises(InvalidInput):
        evaluate_guess(guess, secret)


def test_eliminated_letters():
    assert eliminated_letters(["CRANE"], "ABIDE") == {"C", "R", "N"}
    # E is in the secret, so repeated Es never eliminate it
    assert eliminated_letters(["EERIE"], "ABIDE") == {"R"}
    assert eliminated_letters([], "ABIDE") == set()


def test_is_letter_usable():
    assert is_letter_usable(["CRANE"], "c", "ABIDE") is False
    assert is_letter_usable(["CRANE"], "a", "ABIDE") is True
    assert is_letter_usable(["CRANE"], "z", "ABIDE") is True


def test_keyboard_rows():
    rows = keyboard_rows(["CRANE"], "ABIDE")
    assert ["".join(key["letter"] for key in row) for row in rows] == ["qwertyuiop", "asdfghjkl", "zxcvbnm"]
    usable = {key["letter"]: key["usable"] for row in rows for key in row}
    assert usable["c"] is False
    assert usable["r"] is False
    assert usable["e"] is True
    assert usable["q"] is True


def test_render_row():
    assert render_row([C, P, A]) == "🟩🟨⬜"


def test_todays_word():
    assert todays_word_index(date(2025, 6, 1)) == 0
    assert todays_word_index(date(2025, 6, 11)) == 10
    assert todays_word(["ALPHA", "BRAVO", "DELTA"], date(2025, 6, 5)) == "BRAVO"
    with pytest.raises(ValueError):
        todays_word([], date(2025, 6, 5))


def test_load_words(tmp_path):
    path = tmp_path / "words.txt"
    path.write_text("crane\nRiver\n\nanchor\nab1de\nslate\n")
    assert load_words(str(path), 5) == ["CRANE", "RIVER", "SLATE"]
    assert load_words(str(path), 6) == ["ANCHOR"]


def test_game_win():
    game = WordleGame(secret_word="crane")
    result = game.submit("slate")
    assert result.statuses == [A, A, C, A, C]
    assert not result.solved
    assert game.status == "in_progress"
    assert game.remaining_guesses == 5

    result = game.submit("Crane")
    assert result.solved
    assert game.status == "won"
    assert game.is_over
    with pytest.raises(GuessRejected, match="already solved"):
        game.submit("plane")


def test_game_loss():
    game = WordleGame(secret_word="CRANE", max_guesses=2)
    game.submit("SLATE")
    game.submit("TOMBS")
    assert game.status == "lost"
    assert game.remaining_guesses == 0
    with pytest.raises(GuessRejected, match="No more guesses left!"):
        game.submit("PLANE")


def test_game_rejects_bad_guesses():
    game = WordleGame(secret_word="CRANE")
    with pytest.raises(GuessRejected, match="Guess must contain 5 letters"):
        game.submit("CRAN")
    with pytest.raises(GuessRejected, match="only letters"):
        game.submit("CR4NE")
    game.submit("SLATE")
    with pytest.raises(GuessRejected, match="already guessed"):
        game.submit("slate")
    assert game.guesses == ["SLATE"]


def test_game_round_trip_and_history():
    game = WordleGame(secret_word="ABIDE", max_guesses=4)
    game.submit("CRANE")
    game.submit("EERIE")

    restored = WordleGame.from_dict(game.to_dict())
    assert restored == game
    assert [r.guess for r in restored.history()] == ["CRANE", "EERIE"]
    assert restored.eliminated() == ["C", "N", "R"]
    assert restored.share_grid().count("\n") == 1
