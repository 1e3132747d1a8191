# ratchet

A software ratchet for your repository. It runs a command that prints a
number on your current checkout (HEAD) and, when asked, on a base branch. It
then checks that the number only moves in the direction you want.

The base branch is checked out into a temporary git worktree, so your working
tree is never touched. The worktree is removed when the run ends, including
when the run is interrupted with Ctrl-C or SIGTERM.

## Installation

```
pip install .
```

## Usage

```
ratchet [flags] <metric command>
```

Commands run through the system shell: `sh -c` on Unix-like systems and
`cmd /C` on Windows. The metric command must print a single number on
standard output. Surrounding whitespace is ignored. The number can be an
integer or a decimal, optionally with an exponent. Hexadecimal floats
(`0x1p-2`), `inf` and `nan` are also accepted.

Without a comparison flag, ratchet runs the metric on HEAD and prints the
value:

```
ratchet "grep -r TODO src | wc -l"
```

With a comparison flag, ratchet also measures the metric on the base branch
named by the flag's value, then tests the HEAD value against it. On success
it prints `Succeeded`. On failure it writes the two values and `Failed` to
standard error.

```
ratchet --le main "grep -r TODO src | wc -l"
```

If the base branch does not exist locally, ratchet fetches it from `origin`.

### Comparison operators (choose one)

| Flag                             | Test                        |
|----------------------------------|-----------------------------|
| `--less-than`, `--lt <base>`     | HEAD metric < base metric   |
| `--less-equal`, `--le <base>`    | HEAD metric <= base metric  |
| `--equal-to`, `--eq <base>`      | HEAD metric == base metric  |
| `--greater-equal`, `--ge <base>` | HEAD metric >= base metric  |
| `--greater-than`, `--gt <base>`  | HEAD metric > base metric   |

### Other flags

| Flag                   | Meaning                                                    |
|------------------------|------------------------------------------------------------|
| `--pre <command>`      | Command to run before the metric command, on each checkout |
| `--post <command>`     | Command to run after the metric command, on each checkout  |
| `--config-file <path>` | Path to a config file (YAML or JSON)                       |
| `--config <string>`    | Config given inline (YAML or JSON)                         |
| `-v`, `--verbose`      | Show progress lines for each checkout and both values      |
| `--version`            | Print `ratchet v0.1.0`                                     |
| `-h`, `--help`         | Show help                                                  |

## Configuration

Settings can come from configuration:

- `--config` takes the configuration itself as a string.
- `--config-file` takes the path of a configuration file.
- When neither is given, ratchet reads a `.ratchet` file in the current
  directory, if there is one.

The keys are `metric`, `pre`, `post`, `lt`, `le`, `eq`, `ge`, `gt` (all
strings) and `verbose` (a boolean). Unknown keys are ignored.

Command-line values take precedence over configuration. A comparison flag on
the command line replaces any comparison set in the configuration.

```yaml
metric: "grep -r TODO src | wc -l"
pre: "make generate"
le: main
verbose: true
```

The same settings can be given in JSON:

```
ratchet --config '{"metric": "wc -l < errors.txt", "lt": "main"}'
```

How the format is chosen:

- **Files:** `.json` files are read as JSON, and `.yaml` or `.yml` files as
  YAML. Any other file is tried as YAML first, then as JSON.
- **Strings:** a string wrapped in `{ ... }` is read as JSON. Any other
  string is tried as YAML, then as JSON.

## Exit status

- `0`: the metric passed the test, or was simply reported.
- `1`: the metric test failed, or a pre, metric or post command failed.
- `2`: any other error, such as a missing metric command, more than one
  comparison, invalid configuration, a missing base branch, or output that is
  not a number.
- `130`: the run was interrupted.

## Environment

- `RUNNER_TEMP`: when set, temporary worktrees are created there instead of
  the system temporary directory.
- `GITHUB_BASE_REF`: when the base branch is `main` and it is not available
  locally, this branch is fetched instead.

## Library use

The pieces behind the command can also be used from Python:

- `ratchet.runner.run(Options(...))` performs a run. It raises
  `MetricTestFailed` when the test fails and `RatchetError` for other
  problems. `ComparisonType` selects the test.
- `ratchet.config` loads configuration: `load_from_file`,
  `load_from_config_string`, `load_from_string`, `load_from_json_string` and
  `load_default`. They return a `Config` and raise `ConfigError` on bad input.
- `ratchet.parser.parse_number` turns command output into a float.
- `ratchet.executor.execute(command, working_dir)` runs a shell command and
  returns its trimmed standard output. It raises `CommandError` when the
  command fails.
- `ratchet.git` has the repository helpers: `is_git_repository`,
  `get_current_branch`, `ensure_branch_exists`, and `create_worktree`, which
  returns a `Worktree` that can be used as a context manager.

## What it does not do

Worktrees left behind by a run that was killed outright can be removed with
`ratchet.cleanup.cleanup_orphaned_worktrees()`. It removes every
`ratchet-worktree-*` directory in the temporary directory and returns their
paths. No `ratchet` command or flag runs it; call the function from Python.