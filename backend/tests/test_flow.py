from types import SimpleNamespace

import pytest

from handrest.utils.flow import (
    AddonSelection, BookingFlow, FlowError, Screen, SCREEN_ORDER, previous_screen,
)


def _addons():
    return [
        SimpleNamespace(id=1, price=799.0),
        SimpleNamespace(id=2, price=599.0),
        SimpleNamespace(id=3, price=299.0),
    ]


def _flow_at(screen: Screen) -> BookingFlow:
    flow = BookingFlow()
    steps = [
        lambda f: f.complete_splash(),
        lambda f: f.select_category(1),
        lambda f: f.select_package(10, 2999.0),
        lambda f: f.submit_property({'property_sqft': 900, 'floor_number': 2}),
        lambda f: f.submit_addons(_addons()),
        lambda f: f.confirm('HR261018ABCDEF'),
    ]
    for step in steps[:SCREEN_ORDER.index(screen)]:
        step(flow)
    assert flow.screen == screen
    return flow


def test_toggle_flips_membership():
    sel = AddonSelection()
    assert sel.toggle(1) is True
    assert sel.is_selected(1)
    assert sel.toggle(1) is False
    assert not sel.is_selected(1)
    assert len(sel) == 0


def test_totals_sum_selected_prices_plus_base():
    sel = AddonSelection()
    addons = _addons()
    assert sel.addon_total(addons) == 0
    sel.toggle(1)
    sel.toggle(3)
    assert sel.addon_total(addons) == 799.0 + 299.0
    assert sel.grand_total(2999.0, addons) == 2999.0 + 799.0 + 299.0
    sel.toggle(1)
    assert sel.grand_total(2999.0, addons) == 2999.0 + 299.0


def test_selected_id_missing_from_catalog_adds_nothing():
    sel = AddonSelection([1, 42])
    assert sel.addon_total(_addons()) == 799.0


def test_forward_sequence_reaches_confirmation():
    flow = _flow_at(Screen.CONFIRMATION)
    assert flow.booking_number == 'HR261018ABCDEF'
    assert flow.package_id == 10


@pytest.mark.parametrize("screen", SCREEN_ORDER[1:])
def test_back_returns_to_immediately_preceding_screen(screen):
    flow = _flow_at(screen)
    assert flow.back() == SCREEN_ORDER[SCREEN_ORDER.index(screen) - 1]
    assert flow.screen == previous_screen(screen)


def test_back_on_splash_stays_on_splash():
    flow = BookingFlow()
    assert flow.back() == Screen.SPLASH


def test_back_to_packages_clears_package_and_details():
    flow = _flow_at(Screen.PROPERTY_DETAILS)
    flow.back()
    assert flow.package_id is None
    assert flow.property_details is None
    assert flow.category_id == 1


def test_back_to_home_clears_category():
    flow = _flow_at(Screen.PACKAGES)
    flow.back()
    assert flow.category_id is None


def test_back_from_booking_keeps_selection_and_its_total():
    flow = _flow_at(Screen.ADDONS)
    flow.toggle_addon(2, 599.0)
    flow.submit_addons(_addons())
    assert flow.selected_addons == [2]
    flow.back()
    assert flow.screen == Screen.ADDONS
    assert flow.selection.ids() == [2]
    assert flow.selected_addons == []
    state = flow.to_dict()
    assert state['addon_price'] == 599.0
    assert state['total_price'] == 2999.0 + 599.0


def test_totals_follow_each_toggle():
    flow = _flow_at(Screen.ADDONS)
    flow.toggle_addon(1, 799.0)
    flow.toggle_addon(3, 299.0)
    assert flow.to_dict()['total_price'] == 2999.0 + 799.0 + 299.0
    flow.toggle_addon(1, 799.0)
    state = flow.to_dict()
    assert state['selected_addons'] == [3]
    assert state['addon_price'] == 299.0
    assert state['total_price'] == 2999.0 + 299.0


def test_submit_addons_reprices_from_catalog():
    flow = _flow_at(Screen.ADDONS)
    flow.toggle_addon(1, 700.0)
    flow.submit_addons(_addons())
    assert flow.addon_price == 799.0


def test_packages_title_is_the_category_name():
    flow = _flow_at(Screen.HOME)
    flow.select_category(1, 'Home Cleaning')
    assert flow.to_dict()['title'] == 'Home Cleaning'
    flow.back()
    assert flow.category_name is None
    assert flow.to_dict()['title'] == 'HandRest'

    flow = _flow_at(Screen.HOME)
    flow.select_category(2)
    assert flow.to_dict()['title'] == 'Packages'

    flow = _flow_at(Screen.HOME)
    flow.quick_clean(1, category_name='Home Cleaning')
    assert flow.to_dict()['title'] == 'Home Cleaning'


def test_second_submit_claim_is_refused():
    flow = _flow_at(Screen.BOOKING)
    claim = flow.begin_submit()
    assert claim['package_id'] == 10
    assert claim['property_details'] == {'property_sqft': 900, 'floor_number': 2}
    with pytest.raises(FlowError):
        flow.begin_submit()
    with pytest.raises(FlowError):
        flow.back()
    flow.confirm('HR261018ABCDEF')
    assert flow.submitting is False
    assert flow.screen == Screen.CONFIRMATION


def test_aborted_submit_can_be_retried():
    flow = _flow_at(Screen.BOOKING)
    flow.begin_submit()
    flow.abort_submit()
    assert flow.screen == Screen.BOOKING
    flow.begin_submit()
    assert flow.submitting is True


def test_submit_claim_requires_booking_screen():
    flow = _flow_at(Screen.ADDONS)
    with pytest.raises(FlowError):
        flow.begin_submit()
    assert flow.submitting is False


def test_transition_from_wrong_screen_raises():
    flow = BookingFlow()
    with pytest.raises(FlowError):
        flow.select_category(1)
    flow = _flow_at(Screen.HOME)
    with pytest.raises(FlowError):
        flow.toggle_addon(1, 799.0)


def test_upgrade_returns_to_packages():
    flow = _flow_at(Screen.PROPERTY_DETAILS)
    flow.request_upgrade()
    assert flow.screen == Screen.PACKAGES
    assert flow.package_id is None


def test_quick_clean_with_and_without_basic_package():
    flow = _flow_at(Screen.HOME)
    flow.quick_clean(1, 10, 2999.0)
    assert flow.screen == Screen.BOOKING
    assert flow.package_price == 2999.0

    flow = _flow_at(Screen.HOME)
    flow.quick_clean(1)
    assert flow.screen == Screen.PACKAGES
    assert flow.package_id is None


def test_restart_resets_to_home():
    flow = _flow_at(Screen.CONFIRMATION)
    flow.restart()
    assert flow.screen == Screen.HOME
    assert flow.to_dict()['total_price'] == 0.0
    assert flow.booking_number is None


def test_to_dict_reports_totals():
    flow = _flow_at(Screen.ADDONS)
    flow.toggle_addon(1, 799.0)
    flow.submit_addons(_addons())
    state = flow.to_dict()
    assert state['screen'] == 'booking'
    assert state['base_price'] == 2999.0
    assert state['addon_price'] == 799.0
    assert state['total_price'] == 3798.0
    assert state['can_go_back'] is True
