# leaguecord

Temporary voice-chat groups for League of Legends players.

A visitor asks the website for a group. The server then creates a private
category, a text channel, a voice channel and a role on the chat server, and
sends back the group's id. The group page shows the group's details and its
invite code. When someone joins the chat server, the bot works out which
invite they used and gives them that group's role. When the last member of a
group leaves, the group is torn down.

## What is in the package

- `leaguecord.timefmt`: `format_duration` writes a duration (a `timedelta`
  or a whole number of nanoseconds) in a short form such as `1h 2m 3s`,
  showing at most `prec` units; a negative `prec` shows them all.
  `time_since` gives a rough description such as `3 days` of how long ago a
  `datetime` was.
- `leaguecord.shared`: `GroupData`, the record the server sends to the group
  page (id, creation time in seconds since the epoch, member count and invite
  code), with `GroupData.create`, `to_json` and `from_json`. `from_json`
  raises `ValueError` on malformed input.
- `leaguecord.command`: `parse` reads a chat message as a `!command`. It can
  match case-sensitively or not and with or without the `!` prefix (`Case`,
  `Prefix`). It returns the arguments, or `None` when the message is not that
  command.
- `leaguecord.response`: `Response`, the HTTP response value the server
  builds: a status, extra headers, a body of bytes or a binary stream, and a
  content type. `Response.redirect` makes a 303 response, `with_header`
  returns a copy with one more header and `body_bytes` reads the whole body.
- `leaguecord.scene`: the pages of the site as data. `parse_route` maps a URL
  path to a `Route`, `scenes_for_route` gives the `Scene` list offered on a
  route and the index shown first, and `App` tracks the current scene and
  lists the header buttons (`scene_buttons`).
- `leaguecord.data`: `Group`, `IdCache`, `InviteTracker`,
  `GroupCreationSpamTracker` and `LeagueCordData`. Every call to the chat
  service goes through a `DiscordApi` object that you supply; failures are
  raised as `DiscordError`.
- `leaguecord.server`: `build_app` returns a Starlette application with the
  site's routes: `/`, `/404`, `/index.html`, `/front.js`, `/front_bg.wasm`,
  `/favicon.ico`, an allow-listed set of files under `/resources/` and
  `/css/`, `/create_group`, `/group/{id}`, `/group_data/{id}` and
  `/group_not_found`. Unknown paths are redirected to `/404`.
  `content_type_for` and `static_file_response` serve files from the static
  directory.
- `leaguecord.main`: `setup_loggers` logs to the console and to hourly
  rotated `server.log` and `bot.log` files in a directory of your choice.
  `format_config` renders a summary of a `ServerConfig` with its `RouteInfo`
  routes and catchers.
- `leaguecord.handlers`: `Door` places new members in the group whose invite
  they used, kicks those it cannot place, and deletes groups that have become
  empty. `LeagueCord.on_ready` resolves the guild's ids and loads its invites
  into a `LeagueCordData`. `module_command` answers `!modules`, and
  `log_error` repeats an error in the bot log channel. `ChatMessage` and
  `Member` describe the events passed in.
- `leaguecord.commands`: `Purge` (`!purge <count>`), `PlayerHelper`
  (`!help`, with the fields from `help_fields`) and `Debug`, the admin
  commands `!cg` (create a group) and `!cleanup` (remove every group and its
  leftovers).

The handlers and commands call more operations on the api object than
`DiscordApi` declares, such as `add_role`, `send_dm`, `list_channels`,
`list_roles`, `reply` and `get_messages`. The module docstrings of
`leaguecord.handlers` and `leaguecord.commands` list them all.

## Group names

Every chat-server object of a group takes its name from the group id:

```python
from leaguecord.data import Group

Group.name_for_id(42)      # "g42"
Group.id_for_name("g42")   # 42
Group.id_for_name("x42")   # None
```

## Serving the site

`leaguecord.server.build_app` returns an ASGI application. Give it your
`DiscordApi` implementation, the shared `LeagueCordData` and the directory of
static files, then run it with any ASGI server.

The `GroupCreationSpamTracker` remembers, for five minutes, which address
created which group. A second group created from the same address inside that
window is logged as a warning; the request is not refused.

## What the package does not do

- It has no client for the chat service. You supply the `DiscordApi`
  implementation and feed the bot's events to the handlers yourself.
- It installs no command and has no entry point that connects the bot and
  starts the web server.
- It renders no pages. `leaguecord.scene` describes routes and scenes, and
  the web page itself (`index.html`, `front.js`, `front_bg.wasm`, the CSS)
  has to be in the static directory you give to `build_app`.

## Tests

The test suite uses pytest. Its dependencies are in the `test` extra.