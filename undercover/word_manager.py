"""
Word Manager for the Undercover game

Handles loading and validation of the YAML file containing the word pairs
dealt to players: one majority (civilian) word and one related minority
(undercover) word per pair.
"""

import yaml
import random
from typing import Any, Dict, List, Optional
import logging

from undercover.core.models import WordPair

logger = logging.getLogger(__name__)


class WordPairValidationError(Exception):
    """Raised when YAML word pair validation fails."""
    pass


class WordManager:
    """Manages loading and random selection of word pairs from a YAML file."""

    def __init__(self, yaml_file_path: str = "words.yaml", rng: Optional[random.Random] = None):
        """
        Initialize WordManager with path to YAML file.

        Args:
            yaml_file_path: Path to the YAML file containing word pairs
            rng: Random source, injectable for deterministic tests
        """
        self.yaml_file_path = yaml_file_path
        self.pairs: List[WordPair] = []
        self._loaded = False
        self._rng = rng or random.Random()

    def load_word_pairs(self) -> None:
        """
        Load word pairs from the YAML file.

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            WordPairValidationError: If YAML structure is invalid
            yaml.YAMLError: If YAML parsing fails
        """
        try:
            with open(self.yaml_file_path, 'r', encoding='utf-8') as file:
                data = yaml.safe_load(file)

            self.validate_yaml_structure(data)
            self.pairs = self._parse_pairs(data)
            self._loaded = True
            logger.info(f"Successfully loaded {len(self.pairs)} word pairs from {self.yaml_file_path}")

        except FileNotFoundError:
            logger.error(f"Word pair file not found: {self.yaml_file_path}")
            raise
        except yaml.YAMLError as e:
            logger.error(f"YAML parsing error: {e}")
            raise
        except WordPairValidationError as e:
            logger.error(f"Word pair validation error: {e}")
            raise

    def load_from_list(self, pairs: List[Dict[str, Any]]) -> None:
        """Load pairs from already-parsed data, validated like the file contents."""
        data = {'pairs': pairs}
        self.validate_yaml_structure(data)
        self.pairs = self._parse_pairs(data)
        self._loaded = True

    def validate_yaml_structure(self, data: Any) -> None:
        """
        Validate the structure of loaded YAML data.

        Args:
            data: Parsed YAML data to validate

        Raises:
            WordPairValidationError: If structure is invalid
        """
        if not isinstance(data, dict):
            raise WordPairValidationError("YAML root must be a dictionary")

        if 'pairs' not in data:
            raise WordPairValidationError("YAML must contain 'pairs' key")

        pairs = data['pairs']
        if not isinstance(pairs, list):
            raise WordPairValidationError("'pairs' must be a list")

        if len(pairs) == 0:
            raise WordPairValidationError("'pairs' list cannot be empty")

        for i, item in enumerate(pairs):
            if not isinstance(item, dict):
                raise WordPairValidationError(f"Pair {i} must be a dictionary")

            for key in ('civilian', 'undercover'):
                if key not in item:
                    raise WordPairValidationError(f"Pair {i} missing required field '{key}'")
                if not isinstance(item[key], str) or not item[key].strip():
                    raise WordPairValidationError(f"Pair {i} field '{key}' must be a non-empty string")

            if item['civilian'].strip() == item['undercover'].strip():
                raise WordPairValidationError(f"Pair {i} uses the same word for both roles")

    def _parse_pairs(self, data: Dict[str, Any]) -> List[WordPair]:
        return [
            WordPair(civilian_word=item['civilian'].strip(), undercover_word=item['undercover'].strip())
            for item in data['pairs']
        ]

    def get_random_word_pair(self, exclude: Optional[WordPair] = None) -> WordPair:
        """
        Get a random word pair, loading the file on first use.

        Args:
            exclude: Pair to avoid, used when players vote to reroll their words.
                Ignored when it is the only pair available.

        Returns:
            A WordPair

        Raises:
            RuntimeError: If no word pairs are available
        """
        if not self._loaded:
            self.load_word_pairs()
        if not self.pairs:
            raise RuntimeError("No word pairs loaded")

        candidates = [pair for pair in self.pairs if pair != exclude] or self.pairs
        return self._rng.choice(candidates)

    def get_all_pairs(self) -> List[WordPair]:
        if not self._loaded:
            raise RuntimeError("No word pairs loaded. Call load_word_pairs() first.")
        return self.pairs.copy()

    def is_loaded(self) -> bool:
        """Check if word pairs have been loaded."""
        return self._loaded

    def get_pair_count(self) -> int:
        """Get the number of loaded word pairs."""
        return len(self.pairs) if self._loaded else 0
