"""
FlapSim Configuration
All tunable parameters for the flappy neuroevolution simulation.
"""

import math

# ─── Canvas / World ───────────────────────────────────────────────────────────
CANVAS_WIDTH  = 400   # px, world width
CANVAS_HEIGHT = 600   # px, world height
GROUND_HEIGHT = 100   # px of ground at the bottom of the canvas
FLOOR_Y       = CANVAS_HEIGHT - GROUND_HEIGHT

# ─── Bird physics ─────────────────────────────────────────────────────────────
GRAVITY       = 0.6   # velocity added every step
JUMP_STRENGTH = -8    # velocity set on a flap (negative = upward)
BIRD_RADIUS   = 16    # collision radius
BIRD_SIZE     = 32    # collision box size
MAX_ROTATION  = math.pi / 4   # cosmetic tilt limit (radians)
ROTATION_FACTOR = 0.1         # rotation = velocity * factor, then clamped
SPAWN_X       = CANVAS_WIDTH / 3
SPAWN_Y       = CANVAS_HEIGHT / 2

# ─── Pipes ────────────────────────────────────────────────────────────────────
PIPE_SPEED      = 3     # px moved left every step
PIPE_SPAWN_RATE = 100   # steps between pipe spawns
PIPE_WIDTH      = 52
PIPE_GAP        = 150   # vertical opening
MIN_PIPE_TOP    = 50    # smallest gap-top offset
MAX_PIPE_TOP    = CANVAS_HEIGHT - GROUND_HEIGHT - PIPE_GAP - MIN_PIPE_TOP

# ─── Neural Network ───────────────────────────────────────────────────────────
INPUT_NODES  = 4
HIDDEN_NODES = 6
OUTPUT_NODES = 1
JUMP_THRESHOLD = 0.5    # output above this triggers a flap

# Sensory inputs fed to every brain (index → meaning)
SENSOR_LABELS = {
    0: "y_norm",          # y / canvas height
    1: "vel_norm",        # velocity mapped -20..20 → 0..1
    2: "pipe_dist",       # distance to target pipe's trailing edge
    3: "gap_offset",      # vertical offset to gap centre, shifted by +0.5
}
VELOCITY_RANGE = 20     # symmetric range used to normalise velocity

# ─── Evolution ────────────────────────────────────────────────────────────────
AI_POPULATION    = 50     # birds per generation
AI_MUTATION_RATE = 0.1    # probability each weight/bias is perturbed
ELITE_COUNT      = 5      # top birds used as parents
SCORE_WEIGHT     = 5000   # fitness = distance + score * SCORE_WEIGHT

SMALL_MUTATION_SIZE   = 0.1    # drift uniform in ±size
LARGE_MUTATION_SIZE   = 0.5    # jump uniform in ±size
LARGE_MUTATION_CHANCE = 0.05   # share of mutated values that take the jump

# ─── Colours ──────────────────────────────────────────────────────────────────
PLAYER_COLOR   = "#FACC15"
CHAMPION_COLOR = "#FF0000"

# ─── Game loop ────────────────────────────────────────────────────────────────
FIXED_TIME_STEP = 1000 / 60   # ms of virtual time per simulation step
MAX_BACKLOG_MS  = 500         # accumulator cap, multiplied by speed
SPEED_CHOICES   = (1, 2, 10)  # AI-mode speed multipliers
FRAME_INTERVAL  = 1 / 60      # s between frames for the headless driver

# ─── Output / Persistence ─────────────────────────────────────────────────────
SAVE_DIR         = "output"                 # charts, snapshots, CSV log
MODEL_FILE       = "flappy-ai-model.json"   # best brain
HIGH_SCORE_FILE  = "flappy-highscore.json"  # best player-mode score
SNAPSHOT_INTERVAL = 10                      # save a frame every N generations
LOG_CSV           = True                    # write per-generation CSV log
