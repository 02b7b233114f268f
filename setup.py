from setuptools import find_packages, setup

package_name = 'waypoint_seg'

setup(
    name=package_name,
    version='0.1.0',
    # <-- src layout: look here for packages
    packages=find_packages(where='src'),
    package_dir={'': 'src'},
    install_requires=[
        'setuptools',
        'torch',
        'numpy',
        'scipy',
        'open3d',
        'opencv-python-headless',
        'pyyaml',
    ],
    extras_require={
        'test': ['pytest'],
    },
    tests_require=['pytest'],
    zip_safe=True,
    maintainer='vincent',
    maintainer_email='vincent@todo.todo',
    description='Waypoint point-cloud semantic labeling → fused semantic map',
    license='Apache-2.0',
    entry_points={
        'console_scripts': [
            'labeler_node    = waypoint_seg.service.labeler_node:main',
            'map_logger      = waypoint_seg.service.map_logger:main',
            'label_waypoints = waypoint_seg.service.label_waypoints:main',
        ],
    },
    data_files=[
        ('share/' + package_name, ['package.xml']),
        ('share/ament_index/resource_index/packages', ['resource/' + package_name]),
        ('share/' + package_name + '/launch', [
            'launch/semantic_labeler.launch.py',
        ]),
        ('share/' + package_name + '/config', [
            'config/labeler.yaml',
        ]),
    ],
)
