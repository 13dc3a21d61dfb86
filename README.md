# ooga

`ooga` holds the computational core of a head-mounted, binocular gaze
tracker. Each eye has its own camera and is lit by a ring of LEDs. From the
positions of the LED reflections (glints) and the pupil in each eye image, the
package computes a 3D cornea centre and a 3D pupil centre. These give an
optical axis for each eye. The two eyes are then combined into one gaze point,
which is mapped into the image of a scene camera and smoothed with a Kalman
filter.

## Contents

| Module | What it provides |
| --- | --- |
| `ooga.common` | Result records (`TrackingResult`, `GazeTrackingResult`, `GrabStatistics`) and the enums `RunningMode` and `GazeState` |
| `ooga.frame` | `BinocularFrame`, which holds the right-eye, left-eye and scene images (selected by `FrameSource`) and a stack of auxiliary images |
| `ooga.timer` | `PerformanceTimer`, a stopwatch that records labelled timestamps and can dump them to a stream |
| `ooga.rate_limiter` | `FrameRateLimiter`, which counts processing slots and averages recent processing times |
| `ooga.result_handler` | `ResultHandler` and `format_sample`, which write gaze results to a tab-separated log |
| `ooga.settings` | `Settings` and `FeedSource`, which read command-line options (`--config`, `--eyefileL`, `--eyefileR`, `--scenefile`, `--help`) and the XML configuration file |
| `ooga.camera` | `Camera`, a pinhole model with radial and tangential distortion, plus `undistort_points` and `project_points` |
| `ooga.ellipse` | `RotatedRect` and `pupil_ellipse_points`, the end points of the pupil ellipse axes blended with the previous frame's points |
| `ooga.pupil3d` | `compute_pupil_center_3d`, the 3D pupil centre after refraction at the corneal sphere |
| `ooga.pupil_center` | `pupil_center`, a rough pupil location: the darkest pixel of a filtered eye image, ignoring a border |
| `ooga.kalman` | `kalman_filter_gaze_point`, one predict/update step of a position-and-velocity Kalman filter that discards implausible measurements |
| `ooga.cornea` | `Cornea`, a least-squares fit of the cornea centre to LED positions and glint directions, returning a `CorneaFit` |
| `ooga.gaze` | `GazeEstimator`, `UserCalibration`, `choose_eyes`, `EyeChoice` and the helpers `optical_vector`, `gaze_vector` and `transform_point` |

## Coordinate conventions

Camera space is right-handed: x points right, y points down and z points away
from the camera. Pixel coordinates start at the top-left corner of the image.
Distances are in metres. The corneal radius is 7.7 mm. The default image size
is 640 × 480 pixels, and the scene camera is taken to be mounted upside down.

## Example

```python
import numpy as np

from ooga.camera import Camera
from ooga.cornea import Cornea

camera = Camera()
camera.set_intrinsic_matrix(np.array([[600.0, 0.0, 320.0],
                                      [0.0, 600.0, 240.0],
                                      [0.0, 0.0, 1.0]]))
camera.set_distortion(np.zeros(5))

# A pixel becomes a unit ray in camera space, and a 3D point becomes a pixel.
ray = camera.pix_to_world_point(330.0, 250.0)
u, v = camera.world_to_pix(ray)

# Fit the cornea centre to LED positions and the rays through their glints.
led_positions = [(0.02, 0.0, 0.0), (-0.02, 0.0, 0.0), (0.0, 0.02, 0.0)]
glint_rays = [camera.pix_to_world_point(px, py)
              for px, py in [(330.0, 240.0), (310.0, 240.0), (320.0, 250.0)]]
fit = Cornea().compute_centre(led_positions, glint_rays, [0.01] * 3)
print(fit.centre, fit.error, fit.converged)
```

`GazeEstimator.process` takes the tracking results and fixation weights
(theta) of both eyes. It returns a `GazeTrackingResult` holding the filtered
point of gaze in scene-camera pixels, the gaze distance, the scores of both
eyes, and a `GazeState` that tells whether both eyes, only one eye, or neither
(a blink) were used. `GazeEstimator.calibration_callback(x, y)` adds the most
recent frame as a user-calibration sample at scene pixel (x, y). It refuses
frames taken during a blink or with only one eye. Once there are three
samples, it solves new K9 correction matrices for both eyes.

`ResultHandler.open` asks on standard input before it overwrites an existing
file, unless a `confirm` callable is given.

## What the package does not do

The package works on numbers that have already been measured. It does not:

- grab frames from cameras;
- write videos;
- draw on or display images;
- find glints in eye images;
- fit the pupil ellipse in an eye image;
- run a processing pipeline in threads.

It also installs no command. `Settings.process_command_line` parses an
argument list, but you have to call it from your own code.

## Running the tests

Install the `test` extra, then run `pytest` from the project directory.