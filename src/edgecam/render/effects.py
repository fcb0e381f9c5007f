"""
Color Effects
=============

Post-processing effects applied when the texture is drawn.

The GLSL program below is used by GLSurface. `apply_effect` is the same
math on the CPU, used by SoftwareSurface:

    0 Normal     identity
    1 Invert     (1 - r, 1 - g, 1 - b)
    2 Grayscale  dot(rgb, (0.299, 0.587, 0.114))
    3 Sepia      fixed 3x3 color matrix, clamped

Alpha is passed through by every effect. Unknown ids draw as Normal.
"""

import numpy as np

from edgecam.models.effect import Effect
from edgecam.processing.edge_detector import LUMA_B, LUMA_G, LUMA_R, round_half_up


SEPIA_MATRIX = np.array(
    [
        [0.393, 0.769, 0.189],
        [0.349, 0.686, 0.168],
        [0.272, 0.534, 0.131],
    ],
    dtype=np.float64,
)

LUMA_WEIGHTS = np.array([LUMA_R, LUMA_G, LUMA_B], dtype=np.float64)


VERTEX_SHADER = """
#version 330
in vec2 vPosition;
in vec2 vTexCoord;
out vec2 texCoord;
void main() {
    gl_Position = vec4(vPosition, 0.0, 1.0);
    texCoord = vTexCoord;
}
"""

FRAGMENT_SHADER = """
#version 330
uniform sampler2D uTexture;
uniform int uEffect;
in vec2 texCoord;
out vec4 fragColor;
void main() {
    vec4 color = texture(uTexture, texCoord);
    if (uEffect == 1) {
        fragColor = vec4(1.0 - color.rgb, color.a);
    } else if (uEffect == 2) {
        float gray = dot(color.rgb, vec3(0.299, 0.587, 0.114));
        fragColor = vec4(gray, gray, gray, color.a);
    } else if (uEffect == 3) {
        float r = dot(color.rgb, vec3(0.393, 0.769, 0.189));
        float g = dot(color.rgb, vec3(0.349, 0.686, 0.168));
        float b = dot(color.rgb, vec3(0.272, 0.534, 0.131));
        fragColor = vec4(min(vec3(r, g, b), 1.0), color.a);
    } else {
        fragColor = color;
    }
}
"""

# Full-screen quad: position (x, y), texcoord (u, v). Texture row 0 is the
# top of the frame.
QUAD_VERTICES = np.array(
    [
        -1.0,  1.0,   0.0, 0.0,  # top left
        -1.0, -1.0,   0.0, 1.0,  # bottom left
         1.0, -1.0,   1.0, 1.0,  # bottom right
         1.0,  1.0,   1.0, 0.0,  # top right
    ],
    dtype="f4",
)

QUAD_INDICES = np.array([0, 1, 2, 0, 2, 3], dtype="u2")


def apply_effect(rgba: np.ndarray, effect) -> np.ndarray:
    """
    Apply a color effect to an RGBA image.

    Args:
        rgba: (H, W, 4) uint8 array
        effect: Effect, id or name; unknown values mean Normal

    Returns:
        New (H, W, 4) uint8 array
    """
    effect = Effect.coerce(effect)
    output = rgba.copy()

    if effect == Effect.INVERT:
        output[..., :3] = 255 - rgba[..., :3]

    elif effect == Effect.GRAYSCALE:
        gray = round_half_up(rgba[..., :3].astype(np.float64) @ LUMA_WEIGHTS)
        gray = np.clip(gray, 0, 255).astype(np.uint8)
        output[..., 0] = gray
        output[..., 1] = gray
        output[..., 2] = gray

    elif effect == Effect.SEPIA:
        toned = rgba[..., :3].astype(np.float64) @ SEPIA_MATRIX.T
        output[..., :3] = np.clip(round_half_up(toned), 0, 255).astype(np.uint8)

    return output
