import pytest

from damctools.port_autoconnect import Patchbay, PortAutoConnect, PortDirection


class FakePatchbay(Patchbay):
    def __init__(self):
        self.directions = {}
        self.ids = {}
        self.links = set()
        self.made = []
        self.closed = 0

    def add(self, port_id, name, direction):
        self.ids[port_id] = name
        self.directions[name] = direction

    def port_name(self, port_id):
        return self.ids.get(port_id)

    def port_direction(self, name):
        return self.directions.get(name)

    def ports(self):
        return list(self.directions)

    def connections(self, name):
        return [b for a, b in self.links if a == name] + [a for a, b in self.links if b == name]

    def connect(self, source, destination):
        self.made.append((source, destination))
        self.links.add((source, destination))

    def close(self):
        self.closed += 1


@pytest.fixture
def bay():
    bay = FakePatchbay()
    bay.add(1, "a:out", PortDirection.OUTPUT)
    bay.add(2, "b:in", PortDirection.INPUT)
    bay.add(3, "c:in", PortDirection.INPUT)
    return bay


@pytest.fixture
def events():
    return {"changed": 0, "shutdown": 0}


@pytest.fixture
def auto(bay, events):
    def changed():
        events["changed"] += 1

    def shutdown():
        events["shutdown"] += 1

    return PortAutoConnect(bay, changed, shutdown)


def test_start_connects_saved_connections(auto, bay):
    auto.start({"a:out": {"b:in"}})
    assert auto.output_connections == {"a:out": {"b:in"}}
    assert auto.input_connections == {"b:in": {"a:out"}}
    assert set(bay.made) == {("a:out", "b:in")}


def test_start_records_existing_connections(auto, bay, events):
    bay.links.add(("a:out", "c:in"))
    auto.start({})
    assert auto.output_connections == {"a:out": {"c:in"}}
    assert auto.input_connections == {"c:in": {"a:out"}}
    assert events["changed"] == 1


def test_events_processed_after_queue_is_stable(auto):
    auto.start({})
    auto.on_port_connect(1, 2, True)
    auto.on_graph_reordered()
    auto.on_slow_timer()
    assert auto.output_connections == {}
    auto.on_slow_timer()
    assert auto.output_connections == {"a:out": {"b:in"}}


def test_disconnect_removes_connection(auto, events):
    auto.start({"a:out": {"b:in", "c:in"}})
    auto.on_port_connect(1, 2, False)
    auto.on_graph_reordered()
    auto.on_slow_timer()
    auto.on_slow_timer()
    assert auto.output_connections == {"a:out": {"c:in"}}
    assert "b:in" not in auto.input_connections
    assert events["changed"] == 1


def test_connection_to_vanished_port_ignored(auto, bay):
    auto.start({})
    auto.on_port_connect(1, 99, True)
    auto.on_graph_reordered()
    auto.on_slow_timer()
    auto.on_slow_timer()
    assert auto.output_connections == {}


def test_input_to_input_connection_ignored(auto):
    auto.start({})
    auto.on_port_connect(2, 3, True)
    auto.on_graph_reordered()
    auto.on_slow_timer()
    auto.on_slow_timer()
    assert auto.output_connections == {}


def test_new_port_registration_autoconnects(auto, bay):
    auto.start({"d:out": {"b:in"}})
    bay.made.clear()
    bay.add(4, "d:out", PortDirection.OUTPUT)
    auto.on_port_registration(4, True)
    auto.on_slow_timer()
    auto.on_slow_timer()
    assert bay.made == [("d:out", "b:in")]
    assert auto.output_connections == {"d:out": {"b:in"}}


def test_unregistration_does_nothing(auto, bay):
    auto.start({"a:out": {"b:in"}})
    bay.made.clear()
    auto.on_port_registration(1, False)
    auto.on_slow_timer()
    auto.on_slow_timer()
    assert bay.made == []
    assert auto.output_connections == {"a:out": {"b:in"}}


def test_disabled_autoconnect_then_reenabled(auto, bay):
    auto.enable_auto_connect = False
    auto.start({"a:out": {"b:in"}})
    assert bay.made == []
    assert auto.output_connections == {"a:out": {"b:in"}}
    auto.enable_auto_connect = True
    assert set(bay.made) == {("a:out", "b:in")}
    assert auto.input_connections == {"b:in": {"a:out"}}


def test_disabled_monitoring_ignores_changes(auto):
    auto.enable_connect_monitoring = False
    auto.start({})
    auto.on_port_connect(1, 2, True)
    auto.on_graph_reordered()
    auto.on_slow_timer()
    auto.on_slow_timer()
    assert auto.output_connections == {}


def test_shutdown_invokes_callback(auto, events):
    auto.on_shutdown(1, "server stopped")
    assert events["shutdown"] == 1
    assert auto.output_connections == {}
    assert auto.input_connections == {}


def test_stop_closes_once_and_start_is_ignored(auto, bay):
    auto.stop()
    auto.stop()
    assert bay.closed == 1
    auto.start({"a:out": {"b:in"}})
    assert bay.made == []
    assert auto.output_connections == {}