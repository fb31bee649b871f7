from setuptools import setup, find_packages

setup(
    name="unipay",
    version="1.0.0",
    description="Region-aware payment gateway registry and unified payment manager",
    python_requires=">=3.9",
    packages=find_packages(exclude=["tests", "tests.*", "scripts"]),
    include_package_data=True,
    install_requires=[
        'flask',
        'python-dotenv',
        'razorpay',
        'requests',
        'stripe>=12.0',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
)
