import threading

import pytest

from force_graph.models import Region
from force_graph.overlay import Highlight, SelectedEvent

from factories import device, host, link, region


@pytest.fixture
def loaded_overlay(model, overlay):
    model.replace_region(Region.from_dict(region(
        devices=[device('d0', master='inst1'), device('d1', master='inst2')],
        hosts=[host('h3')],
        links=[link('d0', 'd1'), link('h3', 'd0')],
    )))
    return overlay


def test_plain_click_selects_exactly_one(loaded_overlay):
    loaded_overlay.update_selected(SelectedEvent('d0'))
    selection = loaded_overlay.update_selected(SelectedEvent('d1'))

    assert selection == ['d1']


def test_shift_click_toggles_membership(loaded_overlay):
    loaded_overlay.update_selected(SelectedEvent('d0'))
    loaded_overlay.update_selected(SelectedEvent('d1', is_shift=True))
    loaded_overlay.update_selected(SelectedEvent('d0~d1', is_shift=True))
    assert loaded_overlay.selected == ['d0', 'd1', 'd0~d1']

    loaded_overlay.update_selected(SelectedEvent('d1', is_shift=True, deselecting=True))
    assert loaded_overlay.selected == ['d0', 'd0~d1']


def test_shift_click_twice_does_not_duplicate(loaded_overlay):
    loaded_overlay.update_selected(SelectedEvent('d0', is_shift=True))
    loaded_overlay.update_selected(SelectedEvent('d0', is_shift=True))

    assert loaded_overlay.selected == ['d0']


def test_every_change_emits_the_full_selection(loaded_overlay):
    emitted = []
    loaded_overlay.add_selection_listener(emitted.append)

    loaded_overlay.update_selected(SelectedEvent('d0'))
    loaded_overlay.update_selected(SelectedEvent('h3', is_shift=True))
    loaded_overlay.deselect_all()

    assert emitted == [['d0'], ['d0', 'h3'], []]


def test_select_link_notifies(loaded_overlay):
    seen = []
    loaded_overlay.add_link_listener(seen.append)

    loaded_overlay.select_link('d0~d1')

    assert loaded_overlay.selected_link == 'd0~d1'
    assert seen == ['d0~d1']


def test_highlights_skip_links_that_are_not_rendered(loaded_overlay):
    applied = loaded_overlay.handle_highlights(
        devices=[{'id': 'd0', 'css': 'primary'}],
        hosts=[],
        links=[{'id': 'd0-d1', 'label': '12.5 Mbps'}, {'id': 'h3/None-d0', 'label': '1 Kbps'}],
        fade_ms=500,
    )

    assert applied == 2
    assert list(loaded_overlay.link_highlights) == ['d0~d1']
    assert loaded_overlay.link_highlights['d0~d1'].fade_ms == 500
    assert loaded_overlay.link_highlights['d0~d1'].label == '12.5 Mbps'


def test_host_links_highlight_when_hosts_are_shown(loaded_overlay):
    loaded_overlay.show_hosts = True

    loaded_overlay.handle_highlights([], [{'id': 'h3'}], [{'id': 'h3/None-d0'}])

    assert 'h3~d0' in loaded_overlay.link_highlights
    assert 'h3' in loaded_overlay.host_highlights


def test_highlight_for_missing_device_is_dropped(loaded_overlay):
    applied = loaded_overlay.handle_highlights([{'id': 'd404'}], [], [])

    assert applied == 0
    assert loaded_overlay.device_highlights == {}


def test_faded_highlights_expire():
    highlight = Highlight('d0~d1', fade_ms=500, applied_at=100.0)

    assert not highlight.expired(now=100.2)
    assert highlight.expired(now=100.6)
    assert not Highlight('d0', applied_at=0.0).expired(now=1e9)


def test_expire_highlights_removes_old_ones(loaded_overlay):
    loaded_overlay.handle_highlights([], [], [{'id': 'd0-d1'}], fade_ms=10)
    loaded_overlay.link_highlights['d0~d1'].applied_at = 0.0

    assert loaded_overlay.expire_highlights(now=1.0) == 1
    assert loaded_overlay.link_highlights == {}


def test_instance_selection_mutes_other_devices(loaded_overlay):
    assert loaded_overlay.change_inst_selection('inst1') == ['d1']
    assert loaded_overlay.change_inst_selection(None) == []


def test_forget_drops_all_state(loaded_overlay):
    loaded_overlay.update_selected(SelectedEvent('d0'))
    loaded_overlay.handle_highlights([{'id': 'd0'}], [], [])
    loaded_overlay.change_inst_selection('inst2')

    loaded_overlay.forget('d0')

    assert loaded_overlay.selected == []
    assert 'd0' not in loaded_overlay.device_highlights
    assert 'd0' not in loaded_overlay.muted


def test_to_dict_reports_overlay_state(loaded_overlay):
    loaded_overlay.update_selected(SelectedEvent('d1'))
    loaded_overlay.handle_highlights([{'id': 'd1', 'css': 'secondary'}], [], [])

    state = loaded_overlay.to_dict()

    assert state['selected'] == ['d1']
    assert state['highlights']['devices'][0]['css'] == 'secondary'


def test_highlight_entries_without_id_are_skipped(loaded_overlay):
    applied = loaded_overlay.handle_highlights(
        devices=[{'css': 'primary'}, {'id': 'd0'}],
        hosts=[{'label': 'x'}],
        links=[{'label': '1 Mbps'}, {'id': 'd0-d1'}],
    )

    assert applied == 2
    assert list(loaded_overlay.device_highlights) == ['d0']
    assert list(loaded_overlay.link_highlights) == ['d0~d1']


def test_highlights_can_be_read_while_they_are_written(loaded_overlay):
    errors = []
    done = threading.Event()

    def writer():
        try:
            for i in range(300):
                loaded_overlay.handle_highlights(
                    [{'id': 'd0'}, {'id': 'd1'}], [], [{'id': 'd0-d1'}], fade_ms=1)
                loaded_overlay.forget('d1' if i % 2 else 'd0~d1')
        except Exception as e:
            errors.append(e)
        finally:
            done.set()

    thread = threading.Thread(target=writer)
    thread.start()
    try:
        while not done.is_set():
            loaded_overlay.to_dict()
            loaded_overlay.expire_highlights()
    except Exception as e:
        errors.append(e)
    thread.join()

    assert errors == []
