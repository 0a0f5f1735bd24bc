"""
AgentSpace - round-based multi-agent puzzle solving and game play.

Every puzzle cell or game player is an agent that perceives shared state,
decides and acts once per round. Rounds repeat until the space converges
(puzzle solved / game over) or the round budget runs out.

No file I/O, no database, no global state: spaces are built from in-memory
definitions and all collaborators are injected.
"""

__version__ = "0.1.0"

# Construction
from .puzzle import (
    ConstraintGroup,
    EliminationEntry,
    PuzzleCell,
    PuzzleSpace,
    create_custom_puzzle_space,
    create_latin_square_space,
    create_sudoku_space,
    parse_grid,
)
from .games import (
    CoinFlipRules,
    GameMove,
    GameRules,
    GameSpace,
    GameState,
    GameStatus,
    IllegalMoveError,
    NimRules,
    RockPaperScissorsRules,
    TicTacToeRules,
    create_game_space,
    select_best_move,
)
from .space import (
    AgentSpace,
    SpaceKindError,
    create_game_agent_space,
    create_puzzle_agent_space,
    format_board,
    get_game_state,
    get_grid,
    get_reasoning_trace,
)

# Execution
from .orchestrator import Orchestrator, run, run_round
from .propagation import backtrack
from .registry import AgentNotFoundError

# Analysis
from .analysis import (
    AgentSpaceResult,
    AgentSpaceSigma,
    DifficultyAnalysis,
    MatchAnalysis,
    build_result,
    get_difficulty_analysis,
    get_match_analysis,
    get_sigma,
)
from .relations import cell_ref_to_agent_id, get_influence, get_relation_summary, trace_relations
from .will import align_game_wills, detect_game_will_conflict, get_will_summary

# Core schemas
from .schemas import (
    Action,
    ActionType,
    AgentSpaceRound,
    Behavior,
    ReasoningLayer,
    ReasoningTraceEntry,
    RoundMetrics,
    SpaceKind,
    TacticalPattern,
    TacticalPerception,
    Tendency,
)
from .config import Config

__all__ = [
    # Puzzle definitions
    "ConstraintGroup",
    "EliminationEntry",
    "PuzzleCell",
    "PuzzleSpace",
    "create_custom_puzzle_space",
    "create_latin_square_space",
    "create_sudoku_space",
    "parse_grid",
    # Games
    "CoinFlipRules",
    "GameMove",
    "GameRules",
    "GameSpace",
    "GameState",
    "GameStatus",
    "IllegalMoveError",
    "NimRules",
    "RockPaperScissorsRules",
    "TicTacToeRules",
    "create_game_space",
    "select_best_move",
    # Spaces
    "AgentSpace",
    "SpaceKindError",
    "create_game_agent_space",
    "create_puzzle_agent_space",
    "format_board",
    "get_game_state",
    "get_grid",
    "get_reasoning_trace",
    # Execution
    "Orchestrator",
    "run",
    "run_round",
    "backtrack",
    "AgentNotFoundError",
    # Analysis
    "AgentSpaceResult",
    "AgentSpaceSigma",
    "DifficultyAnalysis",
    "MatchAnalysis",
    "build_result",
    "get_difficulty_analysis",
    "get_match_analysis",
    "get_sigma",
    "cell_ref_to_agent_id",
    "get_influence",
    "get_relation_summary",
    "trace_relations",
    "align_game_wills",
    "detect_game_will_conflict",
    "get_will_summary",
    # Schemas
    "Action",
    "ActionType",
    "AgentSpaceRound",
    "Behavior",
    "ReasoningLayer",
    "ReasoningTraceEntry",
    "RoundMetrics",
    "SpaceKind",
    "TacticalPattern",
    "TacticalPerception",
    "Tendency",
    # Configuration
    "Config",
]
