# wink

`wink` lets you write small hierarchical state machines that talk to each
other by sending short text messages over UDP. A server on each host starts
machine programs on request. It keeps track of the machines that register
with it and can stop them again.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Concepts

**Address** (`wink.address.Address`). Every machine and server is reached at
an address, made of an IP and a port. Addresses are written `ip:port`, and
`Address.parse` reads that form. A leading colon, as in `:42424`, means
`127.0.0.1`. A plain `ip` with no colon means port 0, which asks for any free
port. Host names are resolved to IPv4 when the address is used.

**Mailbox** (`wink.mailbox.AsyncMailbox`). Messages travel through an
`AsyncMailbox` on top of a `wink.transport.UDPSocket`. Every packet starts
with a four-byte sequence number, counted separately for each destination.
The receiver acknowledges each packet and drops duplicates. A message that
has not been acknowledged is resent every three seconds, for at most five
attempts, and is then given up. `receive()` waits up to three seconds and
returns `(sender, message)` or `None`. A mailbox is a context manager, and
`close()` waits until every outgoing message has been acknowledged or given
up.

**Machine and State** (`wink.machine`). A `Machine` holds named `State`s. A
state may have a parent state, an `on_enter` and an `on_exit` action, and a
mapping of receivers keyed by the first word of a message. A receiver is
called with the sender and the rest of the message. A receiver under the
empty key `""` catches any message the state has no specific receiver for,
and it gets the whole text. A message that the current state does not handle
is passed to its parent, and so on up the tree. If no state handles it, the
machine reports an error and exits.

`Machine.transition` exits the states that the old and new state do not
share, innermost first. It then enters the new ones, outermost first.
`Machine.start(initial="")` enters `initial`, or the first state added if
`initial` is empty, and runs until the machine exits. A machine with no
states returns at once. If no mailbox is given, the machine binds a UDP
socket to its address. `machine.uid` is `name@ip:port` once the machine has
started.

When a machine exits, it runs `machine.on_exit` last. By default this ends
the process. Set it to something else when you embed a machine in a larger
program:

```python
from wink.address import Address
from wink.machine import Machine, State

machine = Machine("demo", Address.parse(":42424"), Address.parse(":42001"))
machine.on_exit = lambda: None
machine.add_state(
    State("main", receivers={"exit": lambda sender, args: machine.exit()})
)
machine.start()  # returns once a message "exit" arrives
```

**Supervision.** On start, a machine sends its parent `started <name>` and
sends `register <name> <pid>` to the server on its own host. Every ten
seconds it sends the parent `pulsed <name>`. When it exits it sends
`exited <name>` and `unregister`. `Machine.error(message)` first sends
`errored <name> <message>` and then exits. A machine that hears nothing from
a child for sixty seconds handles `errored <child> heartbeat timeout` and
then `exited <child>` as if the child had sent them.

**Timers.** `Machine.send_at(to, message, time)` takes a `datetime` or epoch
seconds. `Machine.send_after(to, message, delay)` takes a `timedelta` or
seconds. Both queue a message to send later. A machine sends a message to
itself this way.

**Spawning.** `Machine.spawn(machine, destination=None, args=())` asks the
server on the destination's host to start another machine. Without a
destination, the new machine runs on the same host on any free port. A
machine name may carry a tag after `#`, as in `family/Child#Alice`, so that
several copies of one program can be told apart. `parse_machine_name` splits
a name into the program path and the tag.

## Running a server

```
wink-server serve ./machines
```

This command serves the machine programs under `./machines` at
`127.0.0.1:42000`. Options:

- `-a <address>` sets the address to bind to.
- `-l <directory>` writes the server's output, and each started machine's
  output, to timestamped `.log` files in this directory.

A request `start echo/Echo :42424` runs the executable file
`./machines/echo/Echo`. The first argument it gets is the machine name
(`echo/Echo`). The second is its own address, on the server's IP. The third
is the address of whoever asked for it. Any further words of the request
follow. If a port was requested and a machine is registered on that port,
that machine is stopped first. The server answers these requests:

- `start <name> [:port] [args...]`
- `stop <port>` sends SIGTERM to the machine registered on that port
- `register <name> <pid>` and `unregister`, which machines send themselves
- `list` gets a reply of `Port,PID,Machine` followed by one line per
  registered machine

`Server` in `wink.server` offers the same operations from Python: `serve`,
`start`, `stop`, `list` and `shutdown`. `wink-server help serve` prints the
options.

## Using the client

```
wink start echo/Echo :42424
wink send :42424 hello -r 1
wink list
wink stop :42424
```

- `start [options] <binary> [host] [args...]` asks the server on *host* to
  start a machine, then checks that the reply is `started` for that program.
  `-a <address>` sets the client's own address. `-f true` (or `-f 1`) keeps
  printing the machine's messages until it exits.
- `send [options] <machine> <message>` sends one message. `-r <n>` waits for
  *n* replies and prints them.
- `list [host]` asks a server for its machines. The default host is
  `127.0.0.1:42000`.
- `stop <machine>` asks the server on the machine's host to stop the machine
  on that port.
- `help <command>` prints details and examples for a command.

A command that fails prints an error and exits with status 1.

The module `wink.client` offers the same operations from Python:

- `start_machine` returns the started machine's address. It raises
  `TimeoutError` when no reply arrives and `ValueError` when the reply is
  wrong.
- `stop_machine` sends the stop request.
- `send_message` sends one message.
- `receive_message` returns `(sender, message)` or `None`.
- `list_machines` returns the listing text.

## Samples

The `wink.samples` package holds complete machines to read and reuse. Each
entry function takes an argument vector of the form
`<name> <address> <parent> [...]`, the same one the server passes. If given
`None`, it reads `sys.argv`. Each module also has `configure...` functions
that add the sample's states to a `Machine` you built yourself.

- `echo.main`: replies to every message with the same text.
- `forward.main`: passes every message on to a destination given as a fourth
  argument.
- `fizzbuzz.main`: moves to a `Fizz`, `Buzz` or `FizzBuzz` state, or prints
  the number, for each number it receives.
- `switch.main`: an `off` state with an `on` child state.
- `useless.main`: exits as soon as it enters its first state.
- `family.parent_main` and `family.child_main`: a parent spawns
  `family/Child#Alice` and `family/Child#Bob` and spawns them again when they
  exit. Each child reports an error ten seconds after it starts.
- `pubsub.publisher_main` and `pubsub.subscriber_main`: a publisher sends
  `update <payload>` to its subscribers on `publish <payload>`. A subscriber,
  given the publisher's address as a fourth argument, subscribes,
  unsubscribes after ten seconds and exits after fifteen.
- `hierarchy.empty_main`, `leaf_main`, `simple_main`, `bigger_main` and
  `forrest_main`: machines with empty, single, two-level, three-level and
  multi-rooted state trees.
- `timing.after_main`, `at_main`, `stopwatch_main` and `ticker_main`:
  - `after_main` exits ten seconds after it starts.
  - `at_main` exits at the next whole minute.
  - `stopwatch_main` runs a stopwatch whose `stop` replies
    `elapsed <n> seconds`.
  - `ticker_main` sends `tick <name>` to its parent every *interval* seconds,
    where the interval is a fourth argument.

## What the package does not do

The server starts machines by running executable files from the directory it
serves. The package does not install such files, and the samples are not
installed as commands. To serve a sample, put an executable program in the
served directory that calls the sample's entry function. Its first argument
must be the machine name the server passed, because that name is what the
machine reports in its `started` message.

`stop` only stops machines that have registered with the server. Stopping a
machine does not stop the machines it spawned.