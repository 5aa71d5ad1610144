"""Fold/collapse mixin for CommandEditor."""

from __future__ import annotations

from evedit._structure import resolve_group_range


class FoldMixin:
    """Fold state is a set of header rows; everything else is derived."""

    def _fold_range(self, index: int) -> tuple[int, int] | None:
        """Range folded under header *index*, or None if it cannot fold."""
        if index < 0 or index >= len(self.commands):
            return None
        start, end = resolve_group_range(self.commands, index)
        # child rows resolve to their parent's range; only headers fold
        if start != index or end <= start:
            return None
        return (start, end)

    def foldable_indices(self) -> set[int]:
        return {i for i in range(len(self.commands)) if self._fold_range(i)}

    def hidden_indices(self) -> set[int]:
        hidden: set[int] = set()
        for idx in self._folds:
            rng = self._fold_range(idx)
            if rng:
                hidden.update(range(rng[0] + 1, rng[1] + 1))
        return hidden

    def hidden_count(self, index: int) -> int:
        """Rows hidden under fold *index*; 0 when it is not folded."""
        if index not in self._folds:
            return 0
        rng = self._fold_range(index)
        return rng[1] - rng[0] if rng else 0

    def folded_counts(self) -> dict[int, int]:
        counts = {}
        for idx in self._folds:
            count = self.hidden_count(idx)
            if count:
                counts[idx] = count
        return counts

    def is_folded(self, index: int) -> bool:
        return index in self._folds

    def visible_indices(self) -> list[int]:
        hidden = self.hidden_indices() if self._folds else set()
        return [i for i in range(len(self.commands)) if i not in hidden]

    def toggle_fold(self, index: int) -> None:
        if index in self._folds:
            self._folds = self._folds - {index}
        elif self._fold_range(index):
            self._folds = self._folds | {index}

    def fold_all(self) -> None:
        self._folds = self.foldable_indices()

    def unfold_all(self) -> None:
        self._folds = set()

    def _unfold_for_indices(self, indices) -> None:
        """Open every fold hiding one of *indices*; other folds stay."""
        targets = set(indices)
        if not targets or not self._folds:
            return
        keep = set()
        for idx in self._folds:
            rng = self._fold_range(idx)
            if rng and any(rng[0] < i <= rng[1] for i in targets):
                continue
            keep.add(idx)
        self._folds = keep

    def _adjust_fold_indices(self, from_index: int, delta: int) -> None:
        """Shift fold headers after rows were inserted (delta>0) or removed."""
        if delta == 0 or not self._folds:
            return
        if delta > 0:
            self._folds = {i + delta if i >= from_index else i for i in self._folds}
        else:
            removed_end = from_index - delta
            self._folds = {
                i + delta if i >= removed_end else i
                for i in self._folds
                if not (from_index <= i < removed_end)
            }

    def _prune_folds(self) -> None:
        self._folds = {i for i in self._folds if self._fold_range(i)}

    def _remap_folds(self, order: list[int]) -> None:
        """Carry fold headers across a reorder; order[new] == old index."""
        if not self._folds:
            return
        self._folds = {new for new, old in enumerate(order) if old in self._folds}
