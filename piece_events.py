#!/usr/bin/env python3
# -*- coding: utf-8 -*-
#
# Piece events from PGN streams: one CSV line per capture, promotion and end-of-game fate of every piece.
#
# Key conventions (explicit):
# - a piece is named by color, role and starting file: "White-Knight-G". Promoted pieces have no file: "White-Queen".
# - line format: piece,event,square,move,by
#     captured : victim,captured,square,move,capturer  (en passant: square of the captured pawn)
#     promoted : pawn,promoted,square,move,null
#     survived : piece,survived,square,move,null       (end of game, every remaining piece)
#   At the end of a decisive game, the losing king is reported as "captured" instead of "survived".
# - move is the full-move number of the last move played (1-based, per game).
# - castling moves king and rook and emits nothing.
#
# Notes:
# - Only the mainline is replayed; variations are ignored.
# - Games with a custom starting position (FEN tag) are skipped: piece identities are unknown there.
# - Inputs may be plain PGN, .pgn.zst or .pgn.bz2; '-' reads stdin.

from __future__ import annotations

import argparse
import bz2
import contextlib
import io
import sys
import time
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, TextIO, Tuple

import chess
import chess.pgn
import zstandard as zstd


# ----------------------------
# Constants
# ----------------------------

ROLE_NAMES = {
    chess.PAWN: "Pawn",
    chess.KNIGHT: "Knight",
    chess.BISHOP: "Bishop",
    chess.ROOK: "Rook",
    chess.QUEEN: "Queen",
    chess.KING: "King",
}

BACK_RANK = [
    chess.ROOK, chess.KNIGHT, chess.BISHOP, chess.QUEEN,
    chess.KING, chess.BISHOP, chess.KNIGHT, chess.ROOK,
]

NO_PIECE = "null"

Event = Tuple[str, str, str, str, str]


# ----------------------------
# Input streams
# ----------------------------

@contextlib.contextmanager
def open_text(path: str) -> Iterator[TextIO]:
    """Open a text stream, decompressing .zst and .bz2 transparently."""
    if path == "-":
        yield sys.stdin
        return

    if path.endswith(".zst"):
        with open(path, "rb") as fh:
            dctx = zstd.ZstdDecompressor()
            with dctx.stream_reader(fh) as reader:
                yield io.TextIOWrapper(reader, encoding="utf-8", errors="replace")
        return

    if path.endswith(".bz2"):
        with bz2.open(path, "rt", encoding="utf-8", errors="replace") as fh:
            yield fh
        return

    with open(path, "r", encoding="utf-8", errors="replace") as fh:
        yield fh


# ----------------------------
# Piece identity
# ----------------------------

def piece_name(color: chess.Color, piece_type: chess.PieceType, starting_file: Optional[int]) -> str:
    name = f"{'White' if color == chess.WHITE else 'Black'}-{ROLE_NAMES[piece_type]}"
    if starting_file is not None:
        name += "-" + chess.FILE_NAMES[starting_file].upper()
    return name


def initial_pieces() -> Dict[chess.Square, str]:
    pieces: Dict[chess.Square, str] = {}
    for color, back_rank, pawn_rank in ((chess.WHITE, 0, 1), (chess.BLACK, 7, 6)):
        for f, piece_type in enumerate(BACK_RANK):
            pieces[chess.square(f, back_rank)] = piece_name(color, piece_type, f)
            pieces[chess.square(f, pawn_rank)] = piece_name(color, chess.PAWN, f)
    return pieces


def winner_from_result(res: str) -> Optional[chess.Color]:
    r = (res or "").strip()
    if r == "1-0":
        return chess.WHITE
    if r == "0-1":
        return chess.BLACK
    return None


# ----------------------------
# Replay
# ----------------------------

def _take(pieces: Dict[chess.Square, str], sq: chess.Square, ctx: str) -> str:
    name = pieces.pop(sq, None)
    if name is None:
        raise RuntimeError(f"No tracked piece on {chess.square_name(sq)} ({ctx})")
    return name


def game_events(game: chess.pgn.Game) -> List[Event]:
    """Replay the mainline of a game from the standard position and return its events."""
    site = (game.headers.get("Site") or "").strip() or "<missing>"
    board = chess.Board()
    pieces = initial_pieces()
    events: List[Event] = []

    moves = 0
    for halfmoves, move in enumerate(game.mainline_moves(), start=1):
        if halfmoves % 2 == 1:
            moves += 1
        ctx = f"Site={site} ply={halfmoves} move={move.uci()}"
        to_name = chess.square_name(move.to_square)

        if board.is_castling(move):
            rank = chess.square_rank(move.from_square)
            if board.is_kingside_castling(move):
                rook_from, king_to, rook_to = chess.square(7, rank), chess.square(6, rank), chess.square(5, rank)
            else:
                rook_from, king_to, rook_to = chess.square(0, rank), chess.square(2, rank), chess.square(3, rank)
            king = _take(pieces, move.from_square, ctx)
            rook = _take(pieces, rook_from, ctx)
            pieces[king_to] = king
            pieces[rook_to] = rook

        elif board.is_en_passant(move):
            captured_sq = chess.square(chess.square_file(move.to_square), chess.square_rank(move.from_square))
            victim = _take(pieces, captured_sq, ctx)
            pawn = _take(pieces, move.from_square, ctx)
            events.append((victim, "captured", chess.square_name(captured_sq), str(moves), pawn))
            pieces[move.to_square] = pawn

        else:
            mover = _take(pieces, move.from_square, ctx)
            victim = pieces.pop(move.to_square, None)
            if victim is not None:
                events.append((victim, "captured", to_name, str(moves), mover))
            if move.promotion:
                events.append((mover, "promoted", to_name, str(moves), NO_PIECE))
                pieces[move.to_square] = piece_name(board.turn, move.promotion, None)
            else:
                pieces[move.to_square] = mover

        board.push(move)

    winner = winner_from_result(game.headers.get("Result", ""))
    for sq in sorted(pieces):
        piece = board.piece_at(sq)
        lost_king = (
            piece is not None
            and piece.piece_type == chess.KING
            and winner is not None
            and piece.color != winner
        )
        events.append((pieces[sq], "captured" if lost_king else "survived", chess.square_name(sq), str(moves), NO_PIECE))

    return events


def format_event(event: Event) -> str:
    return ",".join(event)


# ----------------------------
# CLI
# ----------------------------

@dataclass
class Stats:
    games_seen: int = 0
    games_used: int = 0
    games_skipped_setup: int = 0
    events_written: int = 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Write one CSV line per piece event (capture, promotion, fate) of PGN games.")
    ap.add_argument("paths", nargs="+", help="PGN files (.pgn, .pgn.zst, .pgn.bz2) or '-' for stdin.")
    ap.add_argument("--log-every", type=float, default=60.0, help="Seconds between progress logs; 0 disables.")
    return ap.parse_args(argv)


def main(argv: Optional[List[str]] = None, out: Optional[TextIO] = None) -> int:
    args = parse_args(argv)
    out = out or sys.stdout

    s = Stats()
    t0 = time.time()
    last_log = t0

    def dump_progress(now: float) -> None:
        print(
            f"progress: elapsed={(now - t0)/60:.1f}m games_seen={s.games_seen} games_used={s.games_used} "
            f"skipped_setup={s.games_skipped_setup} events={s.events_written}",
            file=sys.stderr,
            flush=True,
        )

    for path in args.paths:
        print(path, file=sys.stderr, flush=True)
        with open_text(path) as stream:
            while True:
                game = chess.pgn.read_game(stream)
                if game is None:
                    break
                s.games_seen += 1

                if "FEN" in game.headers:
                    s.games_skipped_setup += 1
                    site = game.headers.get("Site", "<missing>")
                    print(f'WARNING: [Site "{site}"] custom starting position; skipping game.', file=sys.stderr, flush=True)
                    continue

                s.games_used += 1
                for ev in game_events(game):
                    out.write(format_event(ev) + "\n")
                    s.events_written += 1

                now = time.time()
                if args.log_every > 0 and (now - last_log) >= args.log_every:
                    dump_progress(now)
                    last_log = now

    out.flush()
    dump_progress(time.time())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
