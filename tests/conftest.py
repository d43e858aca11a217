"""Shared play fixtures."""
import importlib.util

import pytest

from src.ner.models import Play

# transformers replaces its lazy module in sys.modules on first attribute
# access; resolve it once so monkeypatch.setattr("transformers.pipeline", ...)
# patches the module the code under test imports from.
if importlib.util.find_spec("transformers") is not None:
    import transformers
    transformers.pipeline


@pytest.fixture
def macbeth():
    return Play(
        play_id="Macbeth",
        text="Enter LADY MACBETH and BANQUO. ACT I. SCENE II. Banquo speaks to Lady Macbeth.",
        genre="Tragedy",
        characters="Macbeth, Lady Macbeth, Banquo",
        city="Inverness",
        country="Scotland",
    )


@pytest.fixture
def romeo():
    return Play(
        play_id="Romeo and Juliet",
        text="ROMEO speaks. Juliet listens. Mercutio jests.",
        genre="Tragedy",
        characters="Romeo, Juliet, Mercutio",
        city="Verona",
        country="Italy",
    )


@pytest.fixture
def comedy():
    return Play(
        play_id="Twelfth Night",
        text="VIOLA and ORSINO meet. Malvolio frowns.",
        genre="comedy",
        characters="Viola, Orsino, Malvolio, Olivia",
    )
