# tokamak-replay

Read the artifacts that a tokamak particle simulation writes to its run
directory and step through them frame by frame. A run directory holds:

- `manifest_v2.json`, which lists every other file in the run,
- `run_config_v2.json`, which gives the scenario, the seed and the torus geometry,
- `summary_v2.csv`, which has one row of totals for each recorded step,
- `snapshots/particles_step_NNNNNNNN.csv`, which holds the sampled particle positions for each frame.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

```
tokamak-replay --run-dir path/to/run_directory
tokamak-replay --manifest path/to/manifest_v2.json --start-step 10 --playback-rate 2
```

The command opens the run and prints a status block for the current frame:

- the run id,
- the frame position,
- the step and time,
- the sampled and reported particle counts,
- the summary totals for that step, when the summary has a row for it.

It then plays forward at 30 frames per second, scaled by the playback rate.
It prints a new status block each time the frame changes. When the last frame
is reached, it exits with status 0. If the run configuration has no usable
torus geometry, it prints a warning to standard error.

Options:

| Option | Meaning |
| --- | --- |
| `--manifest <path>` | Open a replay from a `manifest_v2.json` file |
| `--run-dir <path>` | Open a replay from a run directory that contains `manifest_v2.json` |
| `--point-size <float>` | Particle point size in pixels. Must be a finite number greater than zero. It is checked and stored in `ViewerOptions`, but the terminal player does not use it |
| `--playback-rate <float>` | Playback speed multiplier. Must be a finite number greater than zero |
| `--start-step <int>` | Start at this recorded step. It must be non-negative and exist in the run |
| `--help`, `-h` | Print usage and exit with status 0 |

Give exactly one of `--manifest` or `--run-dir`. When an option is invalid,
the usage text goes to standard output and the error goes to standard error.

The command exits with status 1 in these cases:

- an option is invalid,
- the replay cannot be opened,
- the requested start step is not among the recorded frames,
- a frame fails to load.

## What this package does not do

There is no graphical window and no rendering. The player only prints text.
The camera and geometry modules compute matrices and vertex data that a
graphical front end could draw, but nothing in the package draws them. The
package also does not run simulations or write run artifacts. It only reads
them.

## Library use

```python
from tokamak_replay.loader import ReplayLoader
from tokamak_replay.snapshot import ReplayError

loader = ReplayLoader()
try:
    loader.open_from_run_directory("runs/run_test")
except ReplayError as error:
    print(f"cannot open replay: {error}")
else:
    print(loader.frame_count(), "frames")
    frame = loader.load_frame_by_ordered_index(0)
    print(frame.step, frame.time_s, len(frame.particles))

    summary = loader.summary_for_step(frame.step)
    if summary is not None:
        print(summary.total_ions, summary.avg_energy_kev, summary.fusion_events_total)
```

Every failure is raised as `tokamak_replay.snapshot.ReplayError`. This covers:

- a missing file or directory,
- a missing key or column,
- a malformed value,
- a frame index or step that does not exist.

Frames are ordered by step number, not by their order in the manifest. The
step of each frame is taken from its snapshot filename. `ReplayLoader` has
these properties:

- `manifest`
- `run_config`
- `ordered_steps`
- `summary_rows`

The loader keeps the frames it has read most recently in a least-recently-used
cache. The cache holds 8 frames by default; set the size with
`ReplayLoader(cache_capacity=...)`.

`load_frame_by_step` looks a frame up by its step number instead of by its
position. `clear` forgets the open run.

### Parsing individual files

- `tokamak_replay.manifest.parse_manifest_v2_file(path)` returns a `ReplayManifest`. Its `files` attribute is a `ManifestFiles`. It fails if a required key is missing, if the schema version is not 2, or if the snapshot list is empty.
- `tokamak_replay.manifest.parse_run_config_v2_file(path)` returns a `ReplayRunConfig`.
- `tokamak_replay.snapshot.parse_particle_snapshot_csv(path)` returns a `ReplayFrame`.
- `tokamak_replay.snapshot.parse_summary_csv(path)` returns the `ReplaySummaryPoint` rows sorted by step.
- `tokamak_replay.snapshot.split_csv_line(line)` splits one CSV line. It honours double quotes and `""` escapes.

In a `ReplayRunConfig`, all fields are optional, and only an unreadable file is an
error. `has_seed` is true when a seed is present. `has_tokamak_geometry` is true
only when both radii are present and positive.

In a `ReplayFrame`, the step, time, particle counts and sample stride come from
the first data row. The sample stride is at least 1.

Snapshot CSV files must have these columns:

- `step`
- `time_s`
- `total_particles`
- `sampled_particles`
- `sample_stride`
- `species_name`
- `x_m`, `y_m`, `z_m`

Columns may appear in any order, extra columns are ignored, and blank lines
are skipped. Species names other than `Deuterium`, `Tritium` and `Helium` map
to `ReplaySpecies.UNKNOWN`.

Summary CSV files need these columns:

- `step`
- `time_s`
- `total_ions`
- `avg_energy_kev`
- `fusion_events_total`

### Camera and geometry helpers

`tokamak_replay.camera` provides:

- `Vec3`, an immutable vector,
- `Mat4`, a column-major matrix,
- `perspective`, `look_at` and `multiply`,
- `OrbitCamera`, which follows drags (`begin_rotate`, `on_cursor_move`, `end_rotate`) and scroll zoom (`on_scroll`) and gives `view_projection_matrix()`.

The camera keeps its pitch within ±1.4 radians and its distance between 0.8
and 20.

`tokamak_replay.geometry` builds `Vertex` tuples of position and RGB colour:

- `torus_line_vertices(major_radius, minor_radius)` gives the line-segment pairs of a 96 × 32 wireframe torus.
- `frame_vertices(frame, max_particles)` gives coloured points for the first particles of a frame.
- `species_color(species)` gives the display colour for a species.

### Playback without a window

`tokamak_replay.viewer.ReplayPlayback` holds a playback position over a loaded
`ReplayLoader`. It has these methods:

- `advance(delta_seconds)` steps forward at 30 frames per second, scaled by the playback rate, and returns how many frames it moved. If a frame fails to load, it pauses playback and raises the error.
- `toggle_pause()` switches between paused and playing.
- `restart()` resumes from the first frame.
- `seek(index)` jumps to a frame, clamped to the valid range, and pauses.
- `status_lines()` gives the text shown for the current frame.

`parse_viewer_args(argv)` returns `ViewerOptions` or raises `UsageError`.
`viewer_usage(program)` returns the usage text.