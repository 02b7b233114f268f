#!/usr/bin/env python3
"""
ROS2 Semantic Map Logger - Save the fused map to a PLY file
Usage: ros2 run waypoint_seg map_logger --ros-args -p topic:=/semantic_segmentation_clouds -p filename:=office_map.ply
"""
import os
from datetime import datetime

import rclpy
from rclpy.node import Node
from rclpy.qos import DurabilityPolicy, QoSProfile, ReliabilityPolicy
from sensor_msgs.msg import PointCloud2

from waypoint_seg.labeling import hyperparameters as H
from waypoint_seg.labeling.utils import save_colored_point_cloud
from waypoint_seg.service.cloud_msgs import cloud_from_msg


class MapLogger(Node):
    def __init__(self):
        super().__init__('semantic_map_logger')

        # Parameters
        self.declare_parameter('topic', H.OUTPUT_TOPIC)
        self.declare_parameter('filename', 'semantic_map.ply')
        self.declare_parameter('save_directory', os.path.expanduser('~/semantic_maps/'))

        topic = self.get_parameter('topic').get_parameter_value().string_value
        self.filename = self.get_parameter('filename').get_parameter_value().string_value
        self.save_dir = self.get_parameter('save_directory').get_parameter_value().string_value

        # The fused map is cumulative, only the latest message matters
        self.latest = None

        latched = QoSProfile(depth=1,
                             durability=DurabilityPolicy.TRANSIENT_LOCAL,
                             reliability=ReliabilityPolicy.RELIABLE)
        self.subscription = self.create_subscription(PointCloud2, topic, self.cloud_callback, latched)

        self.get_logger().info(f"Map logger started. Listening to {topic}")
        self.get_logger().info("Press Ctrl+C to save and exit")

    def cloud_callback(self, msg):
        self.latest = cloud_from_msg(msg)
        self.frame_id = msg.header.frame_id
        self.get_logger().info(f"Fused map now holds {len(self.latest)} points")

    def save_ply(self):
        """Save the latest fused map to a timestamped PLY file"""
        if self.latest is None or len(self.latest) == 0:
            self.get_logger().warn("No map to save!")
            return None

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        base_name = self.filename.replace('.ply', '')
        filepath = os.path.join(self.save_dir, f"{base_name}_{timestamp}.ply")
        save_colored_point_cloud(self.latest, filepath)
        self.get_logger().info(f"Saved {len(self.latest)} points ({self.frame_id}) to {filepath}")
        return filepath


def main(args=None):
    rclpy.init(args=args)

    node = MapLogger()

    try:
        rclpy.spin(node)
    except KeyboardInterrupt:
        node.get_logger().info("Saving semantic map...")
        node.save_ply()
    finally:
        node.destroy_node()
        if rclpy.ok():
            rclpy.shutdown()


if __name__ == '__main__':
    main()
