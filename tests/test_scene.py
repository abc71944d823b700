import pytest

from leaguecord.scene import App, Route, Scene, SceneKind, parse_route, scenes_for_route


@pytest.mark.parametrize(
    "kind, label",
    [
        (SceneKind.HOME, "Home"),
        (SceneKind.ABOUT, "About"),
        (SceneKind.CONTACT, "Contact"),
        (SceneKind.GROUP_NOT_FOUND, "Group not found"),
    ],
)
def test_scene_labels(kind, label):
    assert str(Scene(kind)) == label


def test_group_scene_label_and_id():
    scene = Scene(SceneKind.GROUP, 12)
    assert str(scene) == "Group"
    assert scene.group_id == 12


def test_scene_validation():
    with pytest.raises(ValueError):
        Scene(SceneKind.GROUP)
    with pytest.raises(ValueError):
        Scene(SceneKind.HOME, 3)


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/", Route("home")),
        ("/404", Route("not_found")),
        ("/group/42", Route("group", 42)),
        ("/group_not_found", Route("group_not_found")),
        ("/group/abc", Route("not_found")),
        ("/group/18446744073709551616", Route("not_found")),
        ("/elsewhere", Route("not_found")),
        ("/group/7?x=1", Route("group", 7)),
    ],
)
def test_parse_route(path, expected):
    assert parse_route(path) == expected


@pytest.mark.parametrize(
    "route",
    [Route("home"), Route("not_found"), Route("group", 2**64 - 1), Route("group_not_found")],
)
def test_route_path_round_trip(route):
    assert parse_route(route.path) == route


def test_route_validation():
    with pytest.raises(ValueError):
        Route("group")
    with pytest.raises(ValueError):
        Route("somewhere")


def test_scenes_for_home():
    scenes, index = scenes_for_route(Route("home"))
    assert [s.kind for s in scenes] == [SceneKind.HOME, SceneKind.ABOUT, SceneKind.CONTACT]
    assert index == 0


def test_scenes_for_group():
    scenes, index = scenes_for_route(Route("group", 99))
    assert len(scenes) == 4
    assert scenes[index] == Scene(SceneKind.GROUP, 99)


def test_scenes_for_group_not_found():
    scenes, index = scenes_for_route(Route("group_not_found"))
    assert scenes[index] == Scene(SceneKind.GROUP_NOT_FOUND)


def test_not_found_has_no_scenes():
    assert scenes_for_route(Route("not_found")) is None


def test_app_default_scene_and_fallback():
    scenes, index = scenes_for_route(Route("group", 5))
    assert App(scenes, index).current_scene == scenes[index]
    assert App(scenes, 50).current_scene == scenes[0]


def test_app_requires_scenes():
    with pytest.raises(ValueError):
        App([], 0)


def test_switch_scene_and_buttons():
    scenes, index = scenes_for_route(Route("home"))
    app = App(scenes, index)
    assert app.switch_scene(scenes[2]) is True
    assert app.current_scene == scenes[2]
    buttons = app.scene_buttons()
    assert [label for label, _ in buttons] == [str(s) for s in scenes]
    assert [css for _, css in buttons].count("scene_button current") == 1
    assert buttons[2][1] == "scene_button current"