# machload

A small HTTP load-testing tool. It fires a fixed number of requests (or runs
for a fixed time) against one or more URLs using a pool of worker threads,
then prints a summary of success counts, requests per second, latency
percentiles and status codes.

Every run is recorded as a JSON file under `~/.mach/history`, and runs can be
tagged as a *before* baseline and an *after* target so the two can be
compared, or so a CI job can fail when average latency regresses past a
threshold.

## Installation

```
pip install .
```

This installs the `mach` command. There are no third-party dependencies.

## Usage

```
mach [command] [options] <url>
```

Commands:

| Command             | What it does                                   |
|---------------------|------------------------------------------------|
| `attack`            | Load test (the default when no command given)  |
| `dashboard`, `dash` | Browse recorded runs interactively             |
| `history clear`     | Delete recorded runs                           |
| `examples`          | Show usage examples                            |
| `version`           | Show version information                       |

Options:

```
-n, --requests INT     Total requests (default 100)
-d, --duration STR     Run duration (e.g. 30s, 1m, 2h; a bare number is seconds)
-c, --concurrency INT  Worker threads (default 10)
-r, --rps INT          Per-worker requests per second limit
-p, --profile STR      Test profile: smoke, stress, soak
-m, --method STR       HTTP method (default GET)
-h, --header K:V       Extra request header (repeatable, up to 64)
-b, --body STR         Request body
    --body-file PATH   Read the request body from a file
    --urls-file PATH   Read target URLs from a file, one per line
                       (blank lines and lines starting with # are skipped)
    --ramp-up STR      Stagger worker start-up over this duration
-t, --timeout INT      Socket timeout in seconds (default 10)
-k, --insecure         Skip TLS certificate verification
    --tag STR          Tag name for comparison
    --before           Save this run as the tag's baseline
    --after            Save this run as the tag's target
    --result           Show the comparison for a tag
    --threshold FLOAT  Max allowed latency regression in percent
-v, --version          Show version information
-?, --help             Show help
```

When several URLs are given with `--urls-file`, each worker cycles through
them in order. A response with a 2xx or 3xx status counts as a success.

## Examples

Quick test:

```
mach http://localhost:8080
```

Custom load:

```
mach -n 1000 -c 50 http://example.com
```

Duration-based soak test:

```
mach -d 5m -c 20 http://api.example.com
```

POST with a JSON body:

```
mach -m POST -h "Content-Type:application/json" -b '{"id":1}' http://api.example.com
```

Compare two runs and fail on a regression over 10%:

```
mach --tag checkout --before http://localhost:8080/checkout
mach --tag checkout --after --threshold 10 http://localhost:8080/checkout
mach --tag checkout --result
```

Tagged snapshots are stored under `~/.mach/tags/<tag>/before.json` and
`after.json`. When the *after* run's average latency is more than
`--threshold` percent above the baseline, `mach` prints a regression message
and exits with status 1.

## Profiles

- `smoke`: 10 requests, 2 workers
- `stress`: 10000 requests, 100 workers
- `soak`: 5 minutes, 50 workers

## Dashboard

`mach dashboard` lists the recorded runs. Use the up/down arrow keys to move,
Enter to show a run's JSON record, and `q` or Esc to leave.

## Using it from Python

```python
from machload.models import Options, Result
from machload.stats import calculate_stats
from machload.storage import Storage
from machload.attacker import run

results = [Result(url="http://localhost", status_code=200, duration_ms=12.5)]
stats = calculate_stats(results, 1.0)
print(stats.avg_latency, stats.success_rate())

opts = Options(urls=["http://localhost:8080"], requests=50, concurrency=5)
stats = run(opts, Storage("/tmp/mach-home"))
```

`machload.client` holds the small HTTP/1.1 client (`parse_url`,
`build_request`, `connect`, `fetch_body`, `download_to_file`), and
`machload.ui` the output helpers (`format_summary`, `comparison_row`,
`display_comparison`, `dashboard`).

## What it does not do

- There is no self-update command.
- Proxies are not supported, and results are only shown on the terminal and
  in the history record; there is no option to write a report file, to run
  quietly or to turn colour off.
- Each request waits only for the first chunk of the response (up to 4095
  bytes) and reads the status code from it; response bodies are not read in
  full or checked.
- There is no `history list` command; use `mach dashboard` to browse runs.