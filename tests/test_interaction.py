import pytest

from dmcmatch.core.data_types import AppSettings
from dmcmatch.core.interaction import (
    InteractionController, InteractionState, PointerAction, PointerEvent,
    RESULT_HOVER, RESULT_NONE, RESULT_PAN, RESULT_PIN_HIT, RESULT_SAMPLE,
    RESULT_SAMPLE_FAILED, RESULT_ZOOM,
)

from conftest import make_image


def down(*points):
    return PointerEvent(PointerAction.DOWN, tuple(points))


def move(*points):
    return PointerEvent(PointerAction.MOVE, tuple(points))


def up(*points):
    return PointerEvent(PointerAction.UP, tuple(points))


def click(controller, x, y):
    controller.dispatch(down((x, y)))
    return controller.dispatch(up((x, y)))


@pytest.fixture
def controller(palette, gradient_image):
    # 200x150 图像放入 200x150 视口：画布坐标 == 图像坐标
    ctrl = InteractionController(palette)
    ctrl.load_image(gradient_image, (200, 150))
    return ctrl


def test_dispatch_without_image_is_noop(palette):
    ctrl = InteractionController(palette)
    assert ctrl.dispatch(down((1, 1))).kind == RESULT_NONE
    assert ctrl.frame() is None


def test_click_samples(controller):
    result = click(controller, 30, 40)
    assert result.kind == RESULT_SAMPLE
    assert (result.sample.color.r, result.sample.color.g) == (30, 40)
    assert controller.current_sample == result.sample
    assert controller.state == InteractionState.IDLE


def test_small_movement_is_still_a_click(controller):
    controller.dispatch(down((30, 40)))
    controller.dispatch(move((33, 44)))  # 位移恰好为 5
    assert controller.state == InteractionState.POINTER_DOWN
    result = controller.dispatch(up((33, 44)))
    assert result.kind == RESULT_SAMPLE


def test_drag_beyond_threshold_pans_without_jump(controller):
    controller.set_zoom(2.0)
    assert (controller.viewport.offset_x, controller.viewport.offset_y) == (0.0, 0.0)

    controller.dispatch(down((100, 100)))
    result = controller.dispatch(move((110, 100)))
    assert result.kind == RESULT_PAN
    assert controller.state == InteractionState.PANNING
    # 越过阈值的那一刻不移动
    assert controller.viewport.offset_x == 0.0

    controller.dispatch(move((90, 95)))
    assert controller.viewport.offset_x == pytest.approx(-20.0)
    assert controller.viewport.offset_y == pytest.approx(-5.0)

    result = controller.dispatch(up((90, 95)))
    assert result.kind == RESULT_NONE
    assert controller.current_sample is None
    assert controller.state == InteractionState.IDLE


def test_hover_produces_cursor_preview(controller):
    result = controller.dispatch(move((20, 20)))
    assert result.kind == RESULT_HOVER
    assert result.cursor.color is not None
    assert controller.frame().cursor == result.cursor


def test_cancel_returns_to_idle_without_click(controller):
    controller.dispatch(move((20, 20)))
    controller.dispatch(down((20, 20)))
    controller.dispatch(PointerEvent(PointerAction.CANCEL))
    assert controller.state == InteractionState.IDLE
    assert controller.cursor is None
    assert controller.dispatch(up((20, 20))).kind == RESULT_NONE
    assert controller.current_sample is None


def test_wheel_zooms_about_pointer(controller):
    anchor = (50.0, 60.0)
    before = controller.viewport.canvas_to_image(*anchor)
    result = controller.dispatch(PointerEvent(PointerAction.WHEEL, (anchor,), wheel_delta=120))
    assert result.kind == RESULT_ZOOM
    assert controller.viewport.zoom == pytest.approx(1.1)
    assert controller.viewport.canvas_to_image(*anchor) == pytest.approx(before)

    controller.dispatch(PointerEvent(PointerAction.WHEEL, (anchor,), wheel_delta=-120))
    assert controller.viewport.zoom == pytest.approx(0.99)


def test_pinch_zoom_scales_with_distance(controller):
    result = controller.dispatch(down((50, 75), (150, 75)))
    assert result.kind == RESULT_ZOOM
    assert controller.state == InteractionState.PINCH_ZOOM

    controller.dispatch(move((25, 75), (175, 75)))
    assert controller.viewport.zoom == pytest.approx(1.5)
    # 以初始两指中点为锚点
    assert controller.viewport.canvas_to_image(100, 75) == pytest.approx((100.0, 75.0))

    assert controller.dispatch(up((25, 75))).kind == RESULT_NONE
    assert controller.state == InteractionState.IDLE
    assert controller.current_sample is None


def test_remaining_finger_after_pinch_neither_hovers_nor_pans(controller):
    controller.dispatch(down((50, 75), (150, 75)))
    controller.dispatch(move((25, 75), (175, 75)))
    offsets = (controller.viewport.offset_x, controller.viewport.offset_y)

    lift = PointerEvent(PointerAction.UP, ((25, 75),), remaining=1)
    assert controller.dispatch(lift).kind == RESULT_NONE
    assert controller.state == InteractionState.PINCH_RELEASING

    result = controller.dispatch(move((120, 90)))
    assert result.kind == RESULT_NONE
    assert controller.cursor is None
    assert (controller.viewport.offset_x, controller.viewport.offset_y) == offsets

    assert controller.dispatch(up((120, 90))).kind == RESULT_NONE
    assert controller.state == InteractionState.IDLE
    assert controller.current_sample is None


def test_second_finger_converts_press_into_pinch(controller):
    controller.dispatch(down((50, 75)))
    controller.dispatch(move((50, 75), (150, 75)))
    assert controller.state == InteractionState.PINCH_ZOOM


def test_click_outside_image_fails_sampling(palette):
    ctrl = InteractionController(palette)
    ctrl.load_image(make_image(100, 50), (200, 150))
    result = click(ctrl, 5, 5)
    assert result.kind == RESULT_SAMPLE_FAILED
    assert result.message
    assert ctrl.current_sample is None
    assert ctrl.find_matches() == []


def test_find_matches_requires_sample(controller):
    assert controller.find_matches() == []


def test_select_match_creates_pin(controller):
    click(controller, 30, 40)
    matches = controller.find_matches()
    assert len(matches) == controller.settings.match_limit
    pin = controller.select_match(0)
    assert pin is not None
    assert (pin.image_x, pin.image_y) == (30, 40)
    assert pin.palette_id == matches[0].id
    assert pin.matched_color.to_list() == list(matches[0].entry.rgb)
    assert controller.store.list() == [pin]
    assert controller.current_sample is None
    assert controller.current_matches == []


def test_select_match_invalid_index(controller):
    click(controller, 30, 40)
    controller.find_matches()
    assert controller.select_match(10) is None
    assert controller.select_match(-1) is None
    assert len(controller.store) == 0


def test_click_on_pin_takes_precedence(controller):
    click(controller, 30, 40)
    controller.find_matches()
    pin = controller.select_match(0)

    result = click(controller, 32, 41)
    assert result.kind == RESULT_PIN_HIT
    assert result.pin == pin
    assert controller.highlighted_pin_id == pin.id
    assert controller.current_sample is None
    assert controller.frame().highlighted_pin_id == pin.id


def test_delete_and_clear(controller):
    click(controller, 30, 40)
    controller.find_matches()
    pin = controller.select_match(0)
    click(controller, 32, 41)
    assert controller.delete_pin(pin.id)
    assert controller.highlighted_pin_id is None

    click(controller, 100, 100)
    controller.find_matches()
    controller.select_match(1)
    click(controller, 10, 10)
    controller.clear_pins()
    assert len(controller.store) == 0
    assert controller.current_sample is None
    assert controller.current_matches == []


def test_failed_load_keeps_previous_state(controller, red_image):
    viewport = controller.viewport
    image = controller.image
    with pytest.raises(ValueError):
        controller.load_image(red_image, (0, 0))
    assert controller.viewport is viewport
    assert controller.image is image


def test_load_image_history_policy(controller, red_image):
    click(controller, 30, 40)
    controller.find_matches()
    controller.select_match(0)

    controller.load_image(red_image, (100, 100), clear_history=False)
    assert len(controller.store) == 1
    assert controller.current_sample is None

    controller.load_image(red_image, (100, 100), clear_history=True)
    assert len(controller.store) == 0


def test_set_aperture(controller):
    controller.set_aperture(5)
    result = click(controller, 30, 40)
    assert result.sample.aperture == 5
    with pytest.raises(ValueError):
        controller.set_aperture(4)
    assert controller.aperture == 5


def test_frame_reports_transform_and_pins(controller):
    click(controller, 30, 40)
    controller.find_matches()
    pin = controller.select_match(0)
    controller.set_zoom(2.0)
    frame = controller.frame()
    assert frame.zoom_percent == 200
    assert frame.image.scale == pytest.approx(2.0)
    assert [o.pin_id for o in frame.pins] == [pin.id]
    assert frame.pins[0].dot == pytest.approx(controller.viewport.image_to_canvas(30, 40))
    assert frame.overview.visible


def test_minimap_click_recenters(controller):
    controller.set_zoom(4.0)
    controller.minimap_click(0.0, 0.0)
    assert (controller.viewport.offset_x, controller.viewport.offset_y) == (0.0, 0.0)


def test_settings_drive_thresholds(palette, gradient_image):
    ctrl = InteractionController(palette, settings=AppSettings(drag_threshold=50.0, match_limit=1))
    ctrl.load_image(gradient_image, (200, 150))
    ctrl.dispatch(down((10, 10)))
    ctrl.dispatch(move((40, 10)))
    assert ctrl.dispatch(up((40, 10))).kind == RESULT_SAMPLE
    assert len(ctrl.find_matches()) == 1
