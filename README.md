# damctools

Building blocks for an audio mixing server and its speaker delay controller.
The package has no dependencies outside the standard library.

## Modules

- `damctools.jack_status`: the `JackStatus` flags, plus `describe_status(status)`.
  `describe_status` returns one line for each known bit set in a JACK status mask,
  in bit order. `log_jack_status(level, status)` writes those lines to the logger.
- `damctools.wav`: `load_wav(path)` reads a mono 16-bit PCM WAV file. It returns
  `(samples, sample_rate)`, with the samples as a list of ints. Unknown chunks are
  skipped. Any other channel count or sample width raises `WavFormatError`, as does
  a file without audio data.
- `damctools.biquad`: `BiquadFilter(a_coefs, b_coefs)`, a transposed direct form II
  biquad section. Its coefficients are normalised by `a_coefs[0]`. `put(value)` feeds
  one sample and returns the filtered one. `update()` changes the coefficients and
  keeps the filter state.
- `damctools.server_control`: `ServerControl(send, base_output_instance)` tracks the
  delays requested for each output strip.
  - `adjust_delay()` adds to the delay requested for a strip.
  - `update_delays()` sends every delay that changed.
  - The base output instance takes up any negative delay, so no strip is given a
    negative value.
  - `set_clock_drift()` sends a clock-drift correction.
  - Every message goes through `send(address, args)`.
- `damctools.port_autoconnect`: `PortAutoConnect(patchbay, on_changed, on_shutdown)`
  records the connections made from output ports to input ports. It re-creates them
  when ports are registered again.
  - It works against any implementation of the abstract `Patchbay` class and uses
    `PortDirection` flags.
  - Server events are queued with `on_port_connect`, `on_graph_reordered` and
    `on_port_registration`. These methods may be called from any thread.
  - `on_slow_timer()` processes the queued events once the queue has stopped
    growing between two calls.
  - `output_connections` holds the saved map, ready to be persisted.
- `damctools.pulse_generator`: `PulseGenerator` plays a test pulse, attenuated by
  20 dB, after a fixed delay. `process(nframes)` returns the next block of samples.
  `compute_delay_control(delay_error, timestamp)` corrects the output:
  - An error of more than 96 samples that stays stable over several measurements
    becomes a delay adjustment.
  - A smaller error steers the clock drift.
- `damctools.hotkeys`: `Hotkey` and `HotkeyRegistry` map key combinations to control
  addresses.
  - `add()` and `remove()` call the given `register` and `unregister` callables.
  - `add_from_arguments()` and `remove_from_arguments()` take the arguments
    `(virtual_key_code, modifiers, address)` and raise `TypeError` on bad arguments.
  - `on_hotkey()` queues the addresses of a pressed key.
  - `dispatch_pending()` triggers the queued addresses.
- `damctools.state_persist`:
  - `flatten_config(data)` turns a JSON state tree into a map from addresses to
    argument lists.
  - `StatePersist(root, file_name, base_dir)` loads and saves that tree, together
    with the saved port connections under `portConnections`. Without `base_dir`, the
    file is put next to the running program.
  - `load_state()` returns the saved port connections.
  - `save_state()` returns whether the file was written.

## Example

```python
from damctools.server_control import ServerControl

sent = []
control = ServerControl(lambda address, args: sent.append((address, args)), 19)
control.adjust_delay(20, -48)
control.update_delays()
# sent == [("/strip/19/filterChain/delay", [48]),
#          ("/strip/20/filterChain/delay", [0])]
```

## What the package does not do

There is no command and no server here. You supply the following through callables
and the `Patchbay` interface:

- talking to a JACK server;
- sending or receiving OSC messages over UDP or TCP;
- installing system-wide hotkeys.

Pulse detection in a recorded signal is not included either: no cross-correlation,
threshold detection or resampling.

## Running the tests

```
pip install -e .[test]
pytest
```