#!/usr/bin/env python3
"""
Unit tests for the fixed-capacity ring buffer.
"""

import unittest
from collections import deque
import sys
import os

# Add package to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from navfusion.history import RingBuffer


class TestRingBuffer(unittest.TestCase):
    """Test RingBuffer class."""

    def test_initialization(self):
        """Test empty buffer."""
        buffer = RingBuffer(3)
        self.assertEqual(len(buffer), 0)
        self.assertFalse(buffer)
        self.assertIsNone(buffer.last())
        self.assertIsNone(buffer.previous())
        self.assertEqual(buffer.to_list(), [])

    def test_invalid_capacity(self):
        """Test capacity must be positive."""
        with self.assertRaises(ValueError):
            RingBuffer(0)

    def test_bounded_deque_storage(self):
        """Storage is a deque bounded at the capacity."""
        buffer = RingBuffer(3)
        self.assertIsInstance(buffer.buffer, deque)
        self.assertEqual(buffer.buffer.maxlen, 3)

        for i in range(5):
            buffer.append(i)
        self.assertEqual(list(buffer), [2, 3, 4])
        self.assertEqual(buffer.append(5), 2)

    def test_fifo_eviction_by_content(self):
        """Oldest entries are evicted first."""
        buffer = RingBuffer(3)
        evicted = [buffer.append(i) for i in range(1, 6)]

        self.assertEqual(evicted, [None, None, None, 1, 2])
        self.assertEqual(buffer.to_list(), [3, 4, 5])
        self.assertTrue(buffer.full())

    def test_never_exceeds_capacity(self):
        """Length stays bounded after many insertions."""
        buffer = RingBuffer(20)
        for i in range(1000):
            buffer.append(i)
            self.assertLessEqual(len(buffer), 20)
        self.assertEqual(buffer.to_list(), list(range(980, 1000)))

    def test_indexing(self):
        """Test positive and negative indexing after wraparound."""
        buffer = RingBuffer(4)
        for i in range(6):
            buffer.append(i)

        self.assertEqual(buffer[0], 2)
        self.assertEqual(buffer[-1], 5)
        self.assertEqual(buffer[-2], 4)
        with self.assertRaises(IndexError):
            buffer[4]

    def test_latest_and_neighbours(self):
        """Test latest(), last() and previous()."""
        buffer = RingBuffer(5)
        for value in 'abcdefg':
            buffer.append(value)

        self.assertEqual(buffer.latest(2), ['f', 'g'])
        self.assertEqual(buffer.latest(10), ['c', 'd', 'e', 'f', 'g'])
        self.assertEqual(buffer.latest(0), [])
        self.assertEqual(buffer.last(), 'g')
        self.assertEqual(buffer.previous(), 'f')

    def test_clear(self):
        """Test clearing resets the buffer."""
        buffer = RingBuffer(2)
        buffer.append(1)
        buffer.append(2)
        buffer.clear()

        self.assertEqual(len(buffer), 0)
        buffer.append(3)
        self.assertEqual(buffer.to_list(), [3])


if __name__ == '__main__':
    unittest.main()
