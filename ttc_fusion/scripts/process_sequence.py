#!/usr/bin/env python3
"""
Main script to compute TTC over a sequence of pre-computed frame bundles.

Pipeline:
1. Load configuration and lidar-to-camera calibration
2. Load the frame bundles (.npz) in name order
3. Per frame: cluster lidar points, match boxes, cluster keypoint matches
4. Compute lidar and camera TTC per tracked object
5. Print and optionally save the results

Usage:
    python -m ttc_fusion.scripts.process_sequence --input-dir data/frames \
                                                  --output data/results/ttc.json
"""

import argparse
import logging
import sys
from pathlib import Path
from tqdm import tqdm

# Add the repository root to the path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from ttc_fusion.utils.config_loader import load_config, set_nested_value
from ttc_fusion.utils.data_io import list_frame_files, load_frame, save_ttc_results
from ttc_fusion.calibration.load_calibration import load_projection_parameters
from ttc_fusion.tracking.ttc_tracker import TTCTracker


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Compute camera and lidar TTC over a sequence of frames',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '--input-dir',
        type=str,
        required=True,
        help='Directory containing the frame bundles (.npz)'
    )

    parser.add_argument(
        '--pattern',
        type=str,
        default='*.npz',
        help='Pattern for the frame files (default: *.npz)'
    )

    parser.add_argument(
        '--config',
        type=str,
        default='config/ttc_params.yaml',
        help='Pipeline parameters'
    )

    parser.add_argument(
        '--calibration',
        type=str,
        default='config/calibration_kitti.yaml',
        help='Calibration file with P_rect, R_rect and RT'
    )

    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='JSON file for the results (not saved if omitted)'
    )

    parser.add_argument(
        '--frame-rate',
        type=float,
        default=None,
        help='Override sensor.frame_rate'
    )

    parser.add_argument(
        '--shrink-factor',
        type=float,
        default=None,
        help='Override association.shrink_factor'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    return parser.parse_args(argv)


def process_sequence(args) -> int:
    """Run the pipeline; returns the process exit code."""
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    print("=" * 60)
    print("CAMERA / LIDAR TTC")
    print("=" * 60)

    # ========== SETUP ==========
    print("[1/4] Loading configuration...")
    config = load_config(args.config)
    if args.frame_rate is not None:
        set_nested_value(config, 'sensor.frame_rate', args.frame_rate)
    if args.shrink_factor is not None:
        set_nested_value(config, 'association.shrink_factor', args.shrink_factor)

    print("[2/4] Loading calibration...")
    projection_params = load_projection_parameters(args.calibration)

    frame_files = list_frame_files(args.input_dir, args.pattern)
    if not frame_files:
        print(f"❌ No frames matching {args.pattern} in {args.input_dir}")
        return 1
    print(f"  ✓ {len(frame_files)} frames found")

    tracker = TTCTracker(config, projection_params)

    # ========== PROCESSING ==========
    print("[3/4] Processing frames...")
    all_results = []
    for frame_idx, frame_file in enumerate(tqdm(frame_files, desc="Frames")):
        frame = load_frame(str(frame_file))
        if frame.frame_index is None:
            frame.frame_index = frame_idx
        all_results.extend(tracker.push_frame(frame))

    # ========== SUMMARY ==========
    print("[4/4] Results")
    for result in all_results:
        print(f"  frame {result.frame_index:>4}  box {result.prev_box_id:>3} -> "
              f"{result.curr_box_id:<3}  lidar: {result.ttc_lidar}  "
              f"camera: {result.ttc_camera}")

    if args.output:
        save_ttc_results(all_results, args.output,
                         metadata={'input_dir': args.input_dir,
                                   'frame_rate': tracker.frame_rate,
                                   'shrink_factor': tracker.shrink_factor})
        print(f"Results saved to: {args.output}")

    print("=" * 60)
    print(f"Frames processed: {len(frame_files)}")
    print(f"TTC results: {len(all_results)}")
    print("=" * 60)

    return 0


def main(argv=None):
    """Main function."""
    args = parse_args(argv)

    try:
        return process_sequence(args)
    except KeyboardInterrupt:
        print("\n\n⚠️  Interrupted by user")
        return 1
    except (FileNotFoundError, KeyError, ValueError) as e:
        print(f"\n\n❌ ERROR: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
