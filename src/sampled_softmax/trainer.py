"""Hogwild training loop over shared-weight layer clones."""

from __future__ import annotations

import random
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass

from rich.console import Console

from .features import State
from .layers import SoftmaxLayer

console = Console()


@dataclass
class EpochMetrics:
    epoch: int
    loss: float
    train_acc: float
    eval_acc: float
    seconds: float

    def to_json(self) -> dict[str, float]:
        return asdict(self)


class HogwildTrainer:
    """Trains one output layer with several workers updating shared weights.

    Every epoch each worker gets its own clone from
    ``create_layer_shared_weights`` and a disjoint shard of the examples.
    Weight updates are not synchronised.
    """

    def __init__(self, layer: SoftmaxLayer, workers: int = 2, seed: int = 0) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.layer = layer
        self.workers = workers
        self.rng = random.Random(seed)  # noqa: S311  # nosec B311 - deterministic shuffling

    @staticmethod
    def _run_shard(worker: SoftmaxLayer, shard: Sequence[State]) -> tuple[float, int, int]:
        worker.running_mode = "training"
        loss = 0.0
        correct = 0
        for state in shard:
            worker.label_short_list = [state.label]
            worker.forward_pass(state.sparse_features, state.dense_features)
            loss += worker.candidate_log_loss(state.label)
            correct += int(worker.get_best_output_index() == state.label)
            worker.compute_output_loss(None, state, 0)
            worker.backward_pass()
        return loss, correct, len(shard)

    def train_epoch(self, examples: Sequence[State]) -> tuple[float, float]:
        """Run one pass over ``examples``; returns (mean loss, candidate accuracy)."""
        order = list(range(len(examples)))
        self.rng.shuffle(order)
        shards = [[examples[i] for i in order[w :: self.workers]] for w in range(self.workers)]
        shards = [shard for shard in shards if shard]
        clones = [self.layer.create_layer_shared_weights() for _ in shards]
        with ThreadPoolExecutor(max_workers=len(shards) or 1) as pool:
            futures = [pool.submit(self._run_shard, w, s) for w, s in zip(clones, shards)]
            results = [future.result() for future in futures]
        total = sum(n for _, _, n in results)
        if total == 0:
            return 0.0, 0.0
        loss = sum(item[0] for item in results) / total
        acc = sum(item[1] for item in results) / total
        return loss, acc

    def evaluate(self, examples: Sequence[State]) -> float:
        """Accuracy of the full-softmax prediction on ``examples``."""
        if not examples:
            return 0.0
        probe = self.layer.create_layer_shared_weights()
        probe.running_mode = "test"
        correct = 0
        for state in examples:
            probe.forward_pass(state.sparse_features, state.dense_features)
            correct += int(probe.get_best_output_index() == state.label)
        return correct / len(examples)

    def fit(
        self,
        train_examples: Sequence[State],
        eval_examples: Sequence[State],
        epochs: int,
    ) -> list[EpochMetrics]:
        history: list[EpochMetrics] = []
        for epoch in range(1, epochs + 1):
            start_time = time.perf_counter()
            loss, train_acc = self.train_epoch(train_examples)
            eval_acc = self.evaluate(eval_examples)
            duration = max(time.perf_counter() - start_time, 1e-6)
            metrics = EpochMetrics(
                epoch=epoch, loss=loss, train_acc=train_acc, eval_acc=eval_acc, seconds=duration
            )
            history.append(metrics)
            console.print(
                f"[cyan]Epoch {epoch}[/] loss={loss:.4f} train_acc={train_acc:.3f} "
                f"eval_acc={eval_acc:.3f}"
            )
        return history
