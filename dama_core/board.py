from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .errors import InvalidMove, InvalidState, OutOfBounds
from .hash import compute_board_hash, zobrist_piece_key, zobrist_turn_key
from .move import Coordinate, Move
from .pieces import BOARD_SIZE, Man, Piece, Rank, Side, make_piece


MoveMap = dict[Piece, tuple[Move, ...]]
MoveMapByStart = dict[Coordinate, tuple[Move, ...]]
BoardStatePiece = tuple[int, int, str, bool, int]
BoardState = tuple[str, tuple[BoardStatePiece, ...]]

ROWS_PER_SIDE = 3
PIECES_PER_SIDE = ROWS_PER_SIDE * BOARD_SIZE // 2


def is_dark_square(row: int, col: int) -> bool:
    return (row + col) % 2 == 1


@dataclass(frozen=True, slots=True)
class UndoRecord:
    prev_turn: Side
    prev_hash: int
    piece_before: Piece
    piece_after: Piece
    start: Coordinate
    end: Coordinate
    captured: tuple[Piece, ...]
    captured_positions: tuple[Coordinate, ...]


class Board:
    _DEFAULT_MOVES_CACHE_MAX = 20_000

    def __init__(self) -> None:
        self.board: list[list[Optional[Piece]]] = [
            [None for _ in range(BOARD_SIZE)] for _ in range(BOARD_SIZE)
        ]
        self.turn = Side.LIGHT
        self._set_start_pieces()
        self.zobrist_hash = compute_board_hash(self)
        self.use_move_cache = True
        self.moves_cache_max_entries = self._DEFAULT_MOVES_CACHE_MAX
        self._moves_cache: dict[tuple[int, Side], MoveMapByStart] = {}

    @classmethod
    def empty(cls, *, turn: Side = Side.LIGHT) -> "Board":
        board = cls.__new__(cls)
        board.board = [[None for _ in range(BOARD_SIZE)] for _ in range(BOARD_SIZE)]
        board.turn = turn
        board.zobrist_hash = zobrist_turn_key(turn)
        board.use_move_cache = True
        board.moves_cache_max_entries = board._DEFAULT_MOVES_CACHE_MAX
        board._moves_cache = {}
        return board

    def to_state(self) -> BoardState:
        pieces: list[BoardStatePiece] = []
        for piece in self.getAllPieces():
            pieces.append((piece.row, piece.col, piece.side.value, piece.is_king, piece.id))
        return (self.turn.value, tuple(pieces))

    @classmethod
    def from_state(cls, state: BoardState) -> "Board":
        turn_value, pieces = state
        board = cls.empty(turn=Side(turn_value))
        for row, col, side_value, is_king, identifier in pieces:
            rank = Rank.KING if is_king else Rank.MAN
            board.put(make_piece(Side(side_value), rank, row, col, identifier=identifier))
        return board

    def put(self, piece: Piece) -> Piece:
        if not self._is_within_bounds(piece.row, piece.col):
            raise OutOfBounds(piece.row, piece.col)
        if not is_dark_square(piece.row, piece.col):
            raise InvalidState(f"Pieces may only stand on dark squares, got ({piece.row}, {piece.col}).")
        if self.board[piece.row][piece.col] is not None:
            raise InvalidState(f"Square ({piece.row}, {piece.col}) is already occupied.")
        self.board[piece.row][piece.col] = piece
        self.zobrist_hash ^= zobrist_piece_key(piece.row, piece.col, piece)
        return piece

    def set_turn(self, side: Side) -> None:
        if side is self.turn:
            return
        self.zobrist_hash ^= zobrist_turn_key(self.turn) ^ zobrist_turn_key(side)
        self.turn = side

    def getPiece(self, row: int, col: int) -> Optional[Piece]:
        if not self._is_within_bounds(row, col):
            raise OutOfBounds(row, col)
        return self.board[row][col]

    def getAllPieces(self, side: Optional[Side] = None) -> list[Piece]:
        pieces: list[Piece] = []
        for row in range(BOARD_SIZE):
            for col in range(BOARD_SIZE):
                if not is_dark_square(row, col):
                    continue
                piece = self.board[row][col]
                if piece and (side is None or piece.side == side):
                    pieces.append(piece)
        return pieces

    def count(self, side: Side) -> int:
        return len(self.getAllPieces(side))

    def _resolve_moves_by_start(self, moves_by_start: MoveMapByStart) -> MoveMap:
        resolved: MoveMap = {}
        for (row, col), moves in moves_by_start.items():
            piece = self.board[row][col]
            if piece is None:
                continue
            resolved[piece] = moves
        return resolved

    def getAllValidMoves(self, side: Side) -> MoveMap:
        """Legal moves for ``side`` grouped by piece, with mandatory capture applied."""
        cache_key = (self.zobrist_hash, side)
        if self.use_move_cache:
            cached = self._moves_cache.get(cache_key)
            if cached is not None:
                return self._resolve_moves_by_start(cached)

        capture_map: MoveMapByStart = {}
        quiet_map: MoveMapByStart = {}

        for piece in self.getAllPieces(side):
            moves = piece.possibleMoves(self)
            if not moves:
                continue
            if moves[0].is_capture:
                capture_map[piece.position] = tuple(moves)
            else:
                quiet_map[piece.position] = tuple(moves)

        result = capture_map if capture_map else quiet_map
        if self.use_move_cache and len(self._moves_cache) < self.moves_cache_max_entries:
            self._moves_cache[cache_key] = result
        return self._resolve_moves_by_start(result)

    def legal_moves(self, side: Optional[Side] = None) -> list[Move]:
        moves_map = self.getAllValidMoves(self.turn if side is None else side)
        return [move for moves in moves_map.values() for move in moves]

    def make_move(self, move: Move, side: Optional[Side] = None) -> UndoRecord:
        """Apply ``move`` in place and return what is needed to take it back.

        The whole move is checked before the grid is touched, so a rejected
        move leaves the board as it was.
        """
        piece = self._validate_move(move, self.turn if side is None else side)

        prev_turn = self.turn
        prev_hash = self.zobrist_hash
        start = move.start
        end = move.end

        self.board[start[0]][start[1]] = None
        self.zobrist_hash ^= zobrist_piece_key(start[0], start[1], piece)

        captured: list[Piece] = []
        for cap_row, cap_col in move.captures:
            target = self.board[cap_row][cap_col]
            self.board[cap_row][cap_col] = None
            self.zobrist_hash ^= zobrist_piece_key(cap_row, cap_col, target)
            captured.append(target)

        piece.move(*end)
        self.board[end[0]][end[1]] = piece
        self.zobrist_hash ^= zobrist_piece_key(end[0], end[1], piece)

        piece_after = self._handle_promotion(piece)

        self.turn = piece.side.opponent
        self.zobrist_hash ^= zobrist_turn_key(prev_turn) ^ zobrist_turn_key(self.turn)

        return UndoRecord(
            prev_turn=prev_turn,
            prev_hash=prev_hash,
            piece_before=piece,
            piece_after=piece_after,
            start=start,
            end=end,
            captured=tuple(captured),
            captured_positions=tuple(move.captures),
        )

    def unmake_move(self, undo: UndoRecord) -> None:
        end_row, end_col = undo.end
        self.board[end_row][end_col] = None

        for piece, (row, col) in zip(undo.captured, undo.captured_positions):
            piece.move(row, col)
            self.board[row][col] = piece

        start_row, start_col = undo.start
        undo.piece_before.move(start_row, start_col)
        self.board[start_row][start_col] = undo.piece_before

        self.turn = undo.prev_turn
        self.zobrist_hash = undo.prev_hash

    def apply(self, move: Move, side: Optional[Side] = None) -> "Board":
        """Return a new board with ``move`` played; this board is left untouched."""
        board_copy = self.copy()
        board_copy.make_move(move, side)
        return board_copy

    def copy(self) -> "Board":
        new_board = Board.empty(turn=self.turn)
        new_board.use_move_cache = self.use_move_cache
        new_board.moves_cache_max_entries = self.moves_cache_max_entries
        for piece in self.getAllPieces():
            new_board.put(piece.getCopy())
        return new_board

    def simulateMove(self, move: Move) -> "Board":
        return self.apply(move)

    def compute_hash(self) -> int:
        return self.zobrist_hash

    def recompute_hash(self) -> int:
        return compute_board_hash(self)

    def is_game_over(self) -> Optional[Side]:
        """Winner if the game has ended, otherwise ``None``."""
        light_count = self.count(Side.LIGHT)
        dark_count = self.count(Side.DARK)

        if light_count == 0 and dark_count == 0:
            return None
        if light_count == 0:
            return Side.DARK
        if dark_count == 0:
            return Side.LIGHT

        if self.getAllValidMoves(self.turn):
            return None
        return self.turn.opponent

    def _validate_move(self, move: Move, side: Side) -> Piece:
        if not move.steps:
            raise InvalidMove("Move must contain at least one destination step.")
        for row, col in (*move.as_path(), *move.captures):
            if not self._is_within_bounds(row, col):
                raise OutOfBounds(row, col)

        piece = self.board[move.start[0]][move.start[1]]
        if piece is None:
            raise InvalidMove(f"No piece at {move.start}.")
        if piece.side != side:
            raise InvalidMove(f"Piece at {move.start} belongs to {piece.side.value}, not {side.value}.")

        if move.is_capture:
            if len(move.captures) != len(move.steps):
                raise InvalidMove("Capture move must provide one capture coordinate per step.")
            if len(set(move.captures)) != len(move.captures):
                raise InvalidMove("A piece cannot be captured twice in one move.")
        elif len(move.steps) != 1:
            raise InvalidMove("A move without captures is a single step.")

        prev = move.start
        for idx, step in enumerate(move.steps):
            d_row, d_col = step[0] - prev[0], step[1] - prev[1]
            if move.is_capture:
                if abs(d_row) != 2 or abs(d_col) != 2:
                    raise InvalidMove(f"Jump {prev} -> {step} is not a diagonal jump.")
                if move.captures[idx] != (prev[0] + d_row // 2, prev[1] + d_col // 2):
                    raise InvalidMove(f"Jump {prev} -> {step} does not pass over {move.captures[idx]}.")
            elif abs(d_row) != 1 or abs(d_col) != 1:
                raise InvalidMove(f"Step {prev} -> {step} is not a diagonal step.")
            if step != move.start and self.board[step[0]][step[1]] is not None:
                raise InvalidMove(f"Landing square {step} is occupied.")
            prev = step

        for row, col in move.captures:
            target = self.board[row][col]
            if target is None or target.side == piece.side:
                raise InvalidMove(f"Captured square ({row}, {col}) holds no opposing piece.")

        return piece

    def _handle_promotion(self, piece: Piece) -> Piece:
        if isinstance(piece, Man) and piece.row == piece.side.promotion_row:
            promoted = piece.promote()
            self.board[piece.row][piece.col] = promoted
            self.zobrist_hash ^= zobrist_piece_key(piece.row, piece.col, piece)
            self.zobrist_hash ^= zobrist_piece_key(piece.row, piece.col, promoted)
            return promoted
        return piece

    def _set_start_pieces(self) -> None:
        for row in range(BOARD_SIZE):
            for col in range(BOARD_SIZE):
                if not is_dark_square(row, col):
                    continue
                if row < ROWS_PER_SIDE:
                    self.board[row][col] = Man(Side.DARK, row, col)
                elif row >= BOARD_SIZE - ROWS_PER_SIDE:
                    self.board[row][col] = Man(Side.LIGHT, row, col)

    def _is_within_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE

    def __str__(self) -> str:
        symbols = {
            (Side.LIGHT, Rank.MAN): "l",
            (Side.LIGHT, Rank.KING): "L",
            (Side.DARK, Rank.MAN): "d",
            (Side.DARK, Rank.KING): "D",
        }
        lines = []
        for row in self.board:
            lines.append(" ".join("." if p is None else symbols[(p.side, p.rank)] for p in row))
        return "\n".join(lines)


def legal_moves(board: Board, side: Side) -> list[Move]:
    """All legal moves for ``side`` in generation order (row-major by piece)."""
    return board.legal_moves(side)
