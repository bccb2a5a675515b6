"""
Persistence for FlapSim.

Two small JSON files in one directory:
  flappy-ai-model.json   best known brain (NeuralNetwork.to_dict())
  flappy-highscore.json  best player-mode score

Reading is forgiving: a missing or malformed file is a recovered
condition (logged, returns None / 0), never an exception.
"""

import json
import logging
import os

from neural_network import NeuralNetwork
from config import (SAVE_DIR, MODEL_FILE, HIGH_SCORE_FILE,
                    INPUT_NODES, HIDDEN_NODES, OUTPUT_NODES)

log = logging.getLogger(__name__)


class BrainStore:

    def __init__(self, directory: str = SAVE_DIR):
        self.directory = directory
        self.model_path = os.path.join(directory, MODEL_FILE)
        self.high_score_path = os.path.join(directory, HIGH_SCORE_FILE)

    # ──────────────────────────────────────────────────────────────────────────

    def load_brain(self):
        """Saved brain, or None if there is none or it cannot be read."""
        if not os.path.isfile(self.model_path):
            return None
        try:
            with open(self.model_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            brain = NeuralNetwork.from_dict(data)
        except (OSError, ValueError) as exc:
            # ValueError covers JSONDecodeError, UnicodeDecodeError, InvalidBrainError
            log.warning("Failed to load AI model from %s: %s",
                        self.model_path, exc)
            return None

        topology = (brain.input_nodes, brain.hidden_nodes, brain.output_nodes)
        if topology != (INPUT_NODES, HIDDEN_NODES, OUTPUT_NODES):
            log.warning("Ignoring AI model from %s: topology %s, expected %s",
                        self.model_path, "-".join(map(str, topology)),
                        f"{INPUT_NODES}-{HIDDEN_NODES}-{OUTPUT_NODES}")
            return None
        return brain

    def save_brain(self, brain: NeuralNetwork):
        self._write_json(self.model_path, brain.to_dict())

    def load_high_score(self) -> int:
        if not os.path.isfile(self.high_score_path):
            return 0
        try:
            with open(self.high_score_path, "r", encoding="utf-8") as f:
                return int(json.load(f)["highScore"])
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            log.warning("Failed to load high score from %s: %s",
                        self.high_score_path, exc)
            return 0

    def save_high_score(self, score: int):
        self._write_json(self.high_score_path, {"highScore": int(score)})

    # ──────────────────────────────────────────────────────────────────────────

    def _write_json(self, path: str, payload: dict):
        os.makedirs(self.directory, exist_ok=True)
        tmp_path = path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f)
        os.replace(tmp_path, path)
