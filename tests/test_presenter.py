import random

import pytest

from smilecam.config import DEFAULT_GLYPHS, PresenterConfig
from smilecam.reaction.presenter import Position, ReactionPresenter
from smilecam.reaction.timers import TimerRegistry
from smilecam.viz.surface import HIGHLIGHT_CLASS, PresentationSurface


@pytest.fixture
def presenter(clock):
    return ReactionPresenter(PresentationSurface(), TimerRegistry(clock), PresenterConfig(), rng=random.Random(3))


def test_present_adds_glyph_with_offset(presenter, clock):
    handle = presenter.present(Position(320, 216))
    assert handle.alive
    assert handle.event.glyph in DEFAULT_GLYPHS
    assert handle.event.created_at == clock()
    assert handle.event.ttl == 2.0
    (node,) = presenter.surface.nodes
    assert (node.left, node.top) == (295, 166)
    assert presenter.surface.has_class(HIGHLIGHT_CLASS)


def test_highlight_and_glyph_expire_independently(presenter, clock):
    handle = presenter.present(Position(100, 100))
    clock.advance(0.5)
    presenter.timers.run_due()
    assert not presenter.surface.has_class(HIGHLIGHT_CLASS)
    assert handle.alive

    clock.advance(1.49)
    presenter.timers.run_due()
    assert handle.alive

    clock.advance(0.5)
    presenter.timers.run_due()
    assert not handle.alive
    assert presenter.surface.nodes == []


def test_remove_is_idempotent(presenter, clock):
    handle = presenter.present(Position(10, 10))
    handle.remove()
    handle.remove()
    assert not handle.alive
    # The scheduled removal finds nothing to do
    clock.advance(3)
    assert presenter.timers.run_due() == 2


def test_glyph_pool_is_sampled(clock):
    rng = random.Random(0)
    p = ReactionPresenter(PresentationSurface(), TimerRegistry(clock), rng=rng)
    pool = ["a", "b", "c"]
    seen = {p.present(Position(0, 0), pool).event.glyph for _ in range(60)}
    assert seen == set(pool)


def test_empty_pool_is_rejected(presenter):
    with pytest.raises(ValueError):
        presenter.present(Position(0, 0), [])


def test_clear_removes_everything(presenter):
    presenter.present(Position(0, 0))
    presenter.present(Position(5, 5))
    presenter.clear()
    assert presenter.surface.nodes == []
    assert not presenter.surface.has_class(HIGHLIGHT_CLASS)
    assert presenter.timers.pending == 0


def test_overlapping_highlights_last_until_the_newest_expires(clock):
    p = ReactionPresenter(PresentationSurface(), TimerRegistry(clock), PresenterConfig(), rng=random.Random(3))
    p.present(Position(0, 0))
    clock.advance(0.3)
    p.present(Position(0, 0))
    clock.advance(0.25)
    p.timers.run_due()
    # First highlight's timer has fired; the second one is still showing
    assert p.surface.has_class(HIGHLIGHT_CLASS)
    clock.advance(0.3)
    p.timers.run_due()
    assert not p.surface.has_class(HIGHLIGHT_CLASS)


def test_clear_resets_highlight_count(presenter, clock):
    presenter.present(Position(0, 0))
    presenter.clear()
    presenter.present(Position(0, 0))
    clock.advance(0.5)
    presenter.timers.run_due()
    assert not presenter.surface.has_class(HIGHLIGHT_CLASS)
