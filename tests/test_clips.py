"""
Tests for viral clip preview looping.
"""

import pytest

from studio.production.clips import ClipPlayer, ViralClip


@pytest.fixture
def clip():
    return ViralClip(id="c1", start_time=5.0, duration=3.0, viral_score=91, caption="wow")


class TestViralClip:
    def test_end_time(self, clip):
        assert clip.end_time == 8.0

    def test_from_camel_case(self):
        clip = ViralClip.from_dict({
            "id": 2, "startTime": 12, "duration": 4.5,
            "viralScore": 88, "reason": "hook", "caption": "cap",
        })
        assert clip.id == "2"
        assert clip.start_time == 12.0
        assert clip.viral_score == 88.0
        assert clip.reason == "hook"

    def test_from_partial_dict(self):
        clip = ViralClip.from_dict({"id": "x"})
        assert clip.start_time == 0.0
        assert clip.caption == ""


class TestClipPlayer:
    def test_select_moves_cursor_to_start(self, clip):
        seeks = []
        player = ClipPlayer(seek=seeks.append)
        player.select(clip)
        assert player.current_time == 5.0
        assert seeks == [5.0]

    def test_loops_back_past_end_and_keeps_playing(self, clip):
        player = ClipPlayer()
        player.select(clip)
        player.play()

        assert player.time_update(8.1) == 5.0
        assert player.current_time == 5.0
        assert player.is_playing

    def test_exact_end_loops(self, clip):
        player = ClipPlayer()
        player.select(clip)
        assert player.time_update(8.0) == 5.0

    def test_inside_clip_is_untouched(self, clip):
        seeks = []
        player = ClipPlayer(seek=seeks.append)
        player.select(clip)
        player.play()
        assert player.time_update(6.5) == 6.5
        assert seeks == [5.0]

    def test_pause_state_is_preserved_when_looping(self, clip):
        player = ClipPlayer()
        player.select(clip)
        player.pause()
        player.time_update(9.0)
        assert not player.is_playing

    def test_no_active_clip(self):
        player = ClipPlayer()
        assert player.time_update(100.0) == 100.0

    def test_toggle(self):
        player = ClipPlayer()
        player.toggle()
        assert player.is_playing
        player.toggle()
        assert not player.is_playing
