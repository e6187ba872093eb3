"""Domain knowledge sent along with frames for shot analysis."""

CINEMATOGRAPHY_GUIDE = """\
1. Shot scale (apparent distance between camera and subject)
Descriptive shots establish place and context:
- Extreme long shot: a vast landscape or setting; people are absent or tiny.
  Establishes location or conveys isolation and scale.
- Long shot: the full figure plus a large part of the surroundings; the
  setting still dominates.
Narrative shots follow action and relationships:
- Full shot: the subject head to toe, filling most of the frame.
- American shot: cut around the knees or thighs, common for action.
- Medium shot: cut at the waist; the usual framing for dialogue, showing
  gestures and facial expression.
Expressive shots bring the audience close to emotion:
- Medium close-up: cut at the chest.
- Close-up: the whole face from shoulders up.
- Extreme close-up: a part of the face such as eyes or mouth.
- Detail shot: a small object or body part that matters to the plot.

2. Camera angle
- Bird's eye view: directly above the subject, map-like.
- High angle: above the subject looking down; the subject seems small or
  vulnerable.
- Eye level: neutral, at the subject's eye height.
- Low angle: below the subject looking up; the subject seems powerful or
  threatening.
- Worm's eye view: on the ground looking straight up.

3. Camera movement
- Pan: horizontal rotation on the camera axis. Whip pan: a pan fast enough
  to blur, used as a transition.
- Tilt: vertical rotation on the camera axis.
- Dolly / tracking: the camera travels forwards, backwards or sideways.
- Zoom: a change of focal length rather than a camera move.
- Crane: the camera rises or descends.
- Handheld: unstable, documentary-like; conveys urgency or chaos.
- Steadicam / gimbal: smooth, floating movement while walking or running.

4. Composition and lighting
- Rule of thirds, leading lines, symmetry, depth and negative space.
- Key, fill and back light; high-key versus low-key; hard versus soft light;
  colour temperature and motivated light sources.
"""

ANALYSIS_PROMPT = (
    "Based on the following cinematography guide, analyze the provided image frame. "
    "Describe the shot scale, angle, composition, and lighting using professional terms.\n\n"
    f"---GUIDE START---\n{CINEMATOGRAPHY_GUIDE}\n---GUIDE END---\n\nAnalysis:"
)

CLEAN_PROMPT = (
    "In this image, identify the main subjects (people, prominent objects) and remove them. "
    "Fill in the background where the subjects were removed, keeping a natural and coherent "
    "appearance. Output only the modified image."
)
