"""
lr_schedules.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Learning rate schedules (constant, exponential and step decay) mapping an epoch index to
             the learning rate that the training drivers push into every unit with set_learning_rate().
Published: 10-19-2026
"""

from enum import Enum

from numpy_scae.utils.registry import parse_kind


class ConstantSchedule:
    """Always returns the same learning rate."""
    def __init__(self, initial_lr, final_lr=None, total_epochs=None):
        self.initial_lr = initial_lr

    def __call__(self, epoch):
        return self.initial_lr

class ExponentialDecaySchedule:
    """
    Exponential decay from initial_lr to final_lr over total_epochs.

    lr = initial_lr * (decay_rate ** epoch), with decay_rate = (final_lr / initial_lr) ** (1 / total_epochs).
    """
    def __init__(self, initial_lr, final_lr, total_epochs):
        """
        Initialize exponential decay scheduler parameters.

        Args:
            initial_lr (float): Learning rate at epoch 0.
            final_lr (float): Desired learning rate after total_epochs.
            total_epochs (int): Total epochs to evenly decay over.
        """
        self.initial_lr = initial_lr
        self.final_lr = final_lr
        self.total_epochs = total_epochs

    def __call__(self, epoch):
        # Determine per-epoch decay multiplier
        decay_rate = (self.final_lr / self.initial_lr) ** (1 / max(1, self.total_epochs))
        return self.initial_lr * (decay_rate ** epoch)

class StepDecaySchedule:
    """
    Step decay: the rate is multiplied by a fixed factor every step_size epochs, reaching
    final_lr after total_epochs.
    """
    def __init__(self, initial_lr, final_lr, total_epochs, step_size=10):
        self.initial_lr = initial_lr
        self.final_lr = final_lr
        self.total_epochs = total_epochs
        self.step_size = step_size

    def __call__(self, epoch):
        """
        Args:
            epoch (int): Current epoch index (0-based).

        Returns:
            float: Learning rate for this epoch.
        """
        # Calculate the number of decay events planned
        num_decays = self.total_epochs // self.step_size
        decay_factor = (self.final_lr / self.initial_lr) ** (1 / max(1, num_decays))
        return self.initial_lr * (decay_factor ** (epoch // self.step_size))


class ScheduleKind(Enum):
    CONSTANT = "constant"
    EXPONENTIAL = "exponential"
    STEP = "step"


_SCHEDULES = {
    ScheduleKind.CONSTANT: ConstantSchedule,
    ScheduleKind.EXPONENTIAL: ExponentialDecaySchedule,
    ScheduleKind.STEP: StepDecaySchedule,
}

def build_schedule(kind, initial_lr, final_lr, total_epochs):
    """Create a schedule from its tag ('constant', 'exponential' or 'step')."""
    return _SCHEDULES[parse_kind(ScheduleKind, kind)](initial_lr, final_lr, total_epochs)
